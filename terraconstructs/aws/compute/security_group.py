"""
EC2 security groups.

Rules of a new security group are rendered lazily as the inline
``ingress`` / ``egress`` blocks of its ``aws_security_group``. Mutable
imported groups get one ``aws_vpc_security_group_*_rule`` resource per rule.
"""
import logging
from typing import Any, Dict, List, Optional

import jsii
from cdktf import Annotations, IAnyProducer, IResolveContext, Lazy
from cdktf_cdktf_provider_aws.security_group import SecurityGroup as TfSecurityGroup
from cdktf_cdktf_provider_aws.vpc_security_group_egress_rule import VpcSecurityGroupEgressRule
from cdktf_cdktf_provider_aws.vpc_security_group_ingress_rule import VpcSecurityGroupIngressRule
from constructs import Construct

from ...errors import ValidationError
from ..aws_construct import AwsConstructBase
from .peer import Peer
from .port import Port

logger = logging.getLogger(__name__)

ALL_IPV4 = "0.0.0.0/0"
ALL_IPV6 = "::/0"

# every inline rule object carries all attributes
_EMPTY_RULE = {
    "cidr_blocks": [],
    "ipv6_cidr_blocks": [],
    "prefix_list_ids": [],
    "security_groups": [],
    "self": False,
}

_STANDALONE_RULE_FIELDS = {
    "cidr_blocks": "cidr_ipv4",
    "ipv6_cidr_blocks": "cidr_ipv6",
    "prefix_list_ids": "prefix_list_id",
    "security_groups": "referenced_security_group_id",
}


def _is_ipv6(rule_config: Dict[str, Any]) -> bool:
    return "ipv6_cidr_blocks" in rule_config


def _is_all_traffic_rule(rule: Dict[str, Any]) -> bool:
    return rule["protocol"] == "-1" and (
        ALL_IPV4 in rule.get("cidr_blocks", []) or ALL_IPV6 in rule.get("ipv6_cidr_blocks", [])
    )


@jsii.implements(IAnyProducer)
class _RulesProducer:
    def __init__(self, rules: List[Dict[str, Any]]) -> None:
        self._rules = rules

    def produce(self, context: IResolveContext) -> List[Dict[str, Any]]:
        return list(self._rules)


class SecurityGroupBase(AwsConstructBase, Peer):
    """Either a new or imported security group."""

    security_group_id: str
    allow_all_outbound: bool
    allow_all_ipv6_outbound: bool

    def __init__(self, scope: Construct, id: str) -> None:
        super().__init__(scope, id)
        self._rule_keys = set()

    @property
    def unique_id(self) -> str:
        return self.node.addr

    def to_ingress_rule_config(self) -> Dict[str, Any]:
        return {"security_groups": [self.security_group_id]}

    @staticmethod
    def is_security_group(x: Any) -> bool:
        return isinstance(x, SecurityGroupBase)

    def add_ingress_rule(self, peer: Peer, connection: Port, description: Optional[str] = None) -> None:
        """Add an ingress rule for the current security group."""
        if not description:
            description = f"from {peer.unique_id}:{connection}"
        config = peer.to_ingress_rule_config()
        self._add_rule("ingress", config, connection, description)

    def add_egress_rule(self, peer: Peer, connection: Port, description: Optional[str] = None) -> None:
        """
        Add an egress rule for the current security group.

        Rules for IPv4 peers are ignored while the group allows all outbound
        traffic. The same holds for IPv6 peers and ``allow_all_ipv6_outbound``.
        """
        config = peer.to_egress_rule_config()
        if _is_ipv6(config):
            if self.allow_all_ipv6_outbound:
                Annotations.of(self).add_warning(
                    "Ignoring Egress rule since 'allowAllIpv6Outbound' is set to true; "
                    "To add customized rules, set allowAllIpv6Outbound=false on the SecurityGroup"
                )
                return
        elif self.allow_all_outbound:
            Annotations.of(self).add_warning(
                "Ignoring Egress rule since 'allowAllOutbound' is set to true; "
                "To add customized rules, set allowAllOutbound=false on the SecurityGroup"
            )
            return

        if not description:
            description = f"to {peer.unique_id}:{connection}"
        rule = {**config, **connection.to_rule_json()}
        if _is_all_traffic_rule(rule):
            raise ValidationError(
                "Cannot add an 'all traffic' egress rule in this way; set allowAllOutbound=true (for ipv4) "
                "or allowAllIpv6Outbound=true (for ipv6) on the SecurityGroup instead.",
                self,
            )
        self._add_rule("egress", config, connection, description)

    def _add_rule(self, direction: str, config: Dict[str, Any], connection: Port, description: str) -> None:
        key = (
            direction,
            tuple(sorted((k, tuple(v)) for k, v in config.items())),
            tuple(connection.to_rule_json().items()),
        )
        if key in self._rule_keys:
            return
        self._rule_keys.add(key)
        self._render_rule(direction, config, connection, description)

    def _render_rule(self, direction: str, config: Dict[str, Any], connection: Port, description: str) -> None:
        raise NotImplementedError


class SecurityGroup(SecurityGroupBase):
    """
    Creates an Amazon EC2 security group within a VPC.

    Security Groups act like a firewall with a set of rules, and are
    associated with any AWS resource that has or creates Elastic Network
    Interfaces (ENIs).
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        vpc_id: Optional[str] = None,
        security_group_name: Optional[str] = None,
        description: Optional[str] = None,
        allow_all_outbound: bool = True,
        allow_all_ipv6_outbound: bool = False,
    ) -> None:
        super().__init__(scope, id)
        self.allow_all_outbound = allow_all_outbound
        self.allow_all_ipv6_outbound = allow_all_ipv6_outbound
        self._ingress: List[Dict[str, Any]] = []
        self._egress: List[Dict[str, Any]] = []

        self.resource = TfSecurityGroup(
            self,
            "Resource",
            name=security_group_name,
            name_prefix=None if security_group_name else self.physical_name_prefix(),
            description=description or self.node.path,
            vpc_id=vpc_id,
            ingress=Lazy.any_value(_RulesProducer(self._ingress), omit_empty_array=True),
            egress=Lazy.any_value(_RulesProducer(self._egress)),
        )
        self.security_group_id = self.resource.id
        self.security_group_vpc_id = self.resource.vpc_id

        if allow_all_outbound:
            self._egress.append(self._inline_rule(
                {"cidr_blocks": [ALL_IPV4]}, Port.all_traffic(), "Allow all outbound traffic by default"
            ))
        if allow_all_ipv6_outbound:
            self._egress.append(self._inline_rule(
                {"ipv6_cidr_blocks": [ALL_IPV6]}, Port.all_traffic(), "Allow all outbound ipv6 traffic by default"
            ))

    @staticmethod
    def from_security_group_id(
        scope: Construct,
        id: str,
        security_group_id: str,
        *,
        mutable: bool = True,
        allow_all_outbound: bool = True,
        allow_all_ipv6_outbound: bool = False,
    ) -> "ImportedSecurityGroup":
        """Import an existing security group into this app."""
        return ImportedSecurityGroup(
            scope,
            id,
            security_group_id,
            mutable=mutable,
            allow_all_outbound=allow_all_outbound,
            allow_all_ipv6_outbound=allow_all_ipv6_outbound,
        )

    @staticmethod
    def _inline_rule(config: Dict[str, Any], connection: Port, description: str) -> Dict[str, Any]:
        return {**_EMPTY_RULE, **config, **connection.to_rule_json(), "description": description}

    def _render_rule(self, direction: str, config: Dict[str, Any], connection: Port, description: str) -> None:
        rules = self._ingress if direction == "ingress" else self._egress
        rules.append(self._inline_rule(config, connection, description))


class ImportedSecurityGroup(SecurityGroupBase):
    """
    A security group defined outside of this stack.

    Immutable imports silently ignore added rules.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        security_group_id: str,
        *,
        mutable: bool = True,
        allow_all_outbound: bool = True,
        allow_all_ipv6_outbound: bool = False,
    ) -> None:
        super().__init__(scope, id)
        self.security_group_id = security_group_id
        self.mutable = mutable
        self.allow_all_outbound = allow_all_outbound
        self.allow_all_ipv6_outbound = allow_all_ipv6_outbound
        self._rule_count = 0

    def add_ingress_rule(self, peer: Peer, connection: Port, description: Optional[str] = None) -> None:
        if not self.mutable:
            logger.debug("Ignoring ingress rule for immutable security group %s", self.node.path)
            return
        super().add_ingress_rule(peer, connection, description)

    def add_egress_rule(self, peer: Peer, connection: Port, description: Optional[str] = None) -> None:
        if not self.mutable:
            logger.debug("Ignoring egress rule for immutable security group %s", self.node.path)
            return
        super().add_egress_rule(peer, connection, description)

    def _render_rule(self, direction: str, config: Dict[str, Any], connection: Port, description: str) -> None:
        fields = {_STANDALONE_RULE_FIELDS[k]: v[0] for k, v in config.items()}
        ports = {}
        if not connection.is_all_traffic:
            ports = {"from_port": connection.from_port, "to_port": connection.to_port}
        rule_class = VpcSecurityGroupIngressRule if direction == "ingress" else VpcSecurityGroupEgressRule
        self._rule_count += 1
        rule_class(
            self,
            f"{direction.capitalize()}Rule{self._rule_count}",
            security_group_id=self.security_group_id,
            ip_protocol=connection.protocol.value,
            description=description,
            **ports,
            **fields,
        )
