"""
Peers (the other side) of security group rules.

Each peer renders the source/destination fields of an inline
``aws_security_group`` rule.
"""
import ipaddress
import re
from typing import Any, Dict, Optional

from cdktf import Token

from ...errors import UnscopedValidationError

SECURITY_GROUP_ID_PATTERN = re.compile(r"^sg-[a-z0-9]{8,17}$")
OWNER_ID_PATTERN = re.compile(r"^\d{12}$")


class Peer:
    """A connection peer, see the static factories."""

    unique_id: str

    def to_ingress_rule_config(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_egress_rule_config(self) -> Dict[str, Any]:
        return self.to_ingress_rule_config()

    def __str__(self) -> str:
        return self.unique_id

    @staticmethod
    def ipv4(cidr_ip: str) -> "CidrIPv4":
        """Create an IPv4 peer from a CIDR."""
        return CidrIPv4(cidr_ip)

    @staticmethod
    def any_ipv4() -> "CidrIPv4":
        """Any IPv4 address."""
        return CidrIPv4("0.0.0.0/0")

    @staticmethod
    def ipv6(cidr_ip: str) -> "CidrIPv6":
        """Create an IPv6 peer from a CIDR."""
        return CidrIPv6(cidr_ip)

    @staticmethod
    def any_ipv6() -> "CidrIPv6":
        """Any IPv6 address."""
        return CidrIPv6("::/0")

    @staticmethod
    def prefix_list(prefix_list_id: str) -> "PrefixList":
        """A prefix list."""
        return PrefixList(prefix_list_id)

    @staticmethod
    def security_group_id(security_group_id: str, source_security_group_owner_id: Optional[str] = None) -> "SecurityGroupId":
        """A security group ID."""
        return SecurityGroupId(security_group_id, source_security_group_owner_id)


class CidrIPv4(Peer):
    def __init__(self, cidr_ip: str) -> None:
        if not Token.is_unresolved(cidr_ip):
            _validate_cidr(cidr_ip, ipaddress.IPv4Network, "IPv4", 32)
        self.cidr_ip = cidr_ip
        self.unique_id = cidr_ip

    def to_ingress_rule_config(self) -> Dict[str, Any]:
        return {"cidr_blocks": [self.cidr_ip]}


class CidrIPv6(Peer):
    def __init__(self, cidr_ip: str) -> None:
        if not Token.is_unresolved(cidr_ip):
            _validate_cidr(cidr_ip, ipaddress.IPv6Network, "IPv6", 128)
        self.cidr_ip = cidr_ip
        self.unique_id = cidr_ip

    def to_ingress_rule_config(self) -> Dict[str, Any]:
        return {"ipv6_cidr_blocks": [self.cidr_ip]}


class PrefixList(Peer):
    def __init__(self, prefix_list_id: str) -> None:
        self.prefix_list_id = prefix_list_id
        self.unique_id = prefix_list_id

    def to_ingress_rule_config(self) -> Dict[str, Any]:
        return {"prefix_list_ids": [self.prefix_list_id]}


class SecurityGroupId(Peer):
    """
    A security group referenced by id.

    The owner id is validated but not rendered: inline rules of the
    ``aws_security_group`` resource have no owner attribute.
    """

    def __init__(self, security_group_id: str, source_security_group_owner_id: Optional[str] = None) -> None:
        if not Token.is_unresolved(security_group_id) and not SECURITY_GROUP_ID_PATTERN.match(security_group_id):
            raise UnscopedValidationError(f"Invalid security group ID: \"{security_group_id}\"")
        if (
            source_security_group_owner_id is not None
            and not Token.is_unresolved(source_security_group_owner_id)
            and not OWNER_ID_PATTERN.match(source_security_group_owner_id)
        ):
            raise UnscopedValidationError(
                f"Invalid security group owner ID: \"{source_security_group_owner_id}\""
            )
        self.security_group_id = security_group_id
        self.source_security_group_owner_id = source_security_group_owner_id
        self.unique_id = security_group_id

    def to_ingress_rule_config(self) -> Dict[str, Any]:
        return {"security_groups": [self.security_group_id]}


def _validate_cidr(cidr_ip: str, network_type, label: str, full_mask: int) -> None:
    if "/" not in cidr_ip:
        try:
            network_type(cidr_ip)
        except ValueError:
            raise UnscopedValidationError(f"Invalid {label} CIDR: \"{cidr_ip}\"")
        raise UnscopedValidationError(
            f"CIDR mask is missing in {label}: \"{cidr_ip}\". Did you mean \"{cidr_ip}/{full_mask}\"?"
        )
    try:
        network_type(cidr_ip, strict=False)
    except ValueError:
        raise UnscopedValidationError(f"Invalid {label} CIDR: \"{cidr_ip}\"")
