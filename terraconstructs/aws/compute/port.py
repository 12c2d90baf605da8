"""
Port ranges for security group rules.
"""
from enum import Enum
from typing import Any, Dict, Optional, Union

from cdktf import Token

Number = Union[int, float]


class Protocol(str, Enum):
    ALL = "-1"
    TCP = "tcp"
    UDP = "udp"
    ICMP = "icmp"
    ICMPV6 = "58"


def _render(value: Number) -> str:
    return "{IndirectPort}" if Token.is_unresolved(value) else str(value)


class Port:
    """Interface for classes that provide the connection-specification parts of a security group rule."""

    def __init__(
        self,
        *,
        protocol: Protocol,
        string_representation: str,
        from_port: Optional[Number] = None,
        to_port: Optional[Number] = None,
    ) -> None:
        self.protocol = Protocol(protocol)
        self.from_port = from_port
        self.to_port = to_port
        self._string_representation = string_representation

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Port):
            return NotImplemented
        return self.to_rule_json() == other.to_rule_json()

    def __hash__(self) -> int:
        return hash(str(self))

    def __str__(self) -> str:
        return self._string_representation

    def __repr__(self) -> str:
        return f"Port({self._string_representation})"

    def to_rule_json(self) -> Dict[str, Any]:
        """Produce the ingress/egress rule JSON for the given connection."""
        return {
            "protocol": self.protocol.value,
            "from_port": self.from_port if self.from_port is not None else 0,
            "to_port": self.to_port if self.to_port is not None else 0,
        }

    @staticmethod
    def tcp(port: Number) -> "Port":
        """A single TCP port."""
        return Port(protocol=Protocol.TCP, from_port=port, to_port=port, string_representation=_render(port))

    @staticmethod
    def tcp_range(start_port: Number, end_port: Number) -> "Port":
        """A TCP port range."""
        return Port(
            protocol=Protocol.TCP,
            from_port=start_port,
            to_port=end_port,
            string_representation=f"{_render(start_port)}-{_render(end_port)}",
        )

    @staticmethod
    def all_tcp() -> "Port":
        """Any TCP traffic."""
        return Port(protocol=Protocol.TCP, from_port=0, to_port=65535, string_representation="ALL PORTS")

    @staticmethod
    def udp(port: Number) -> "Port":
        """A single UDP port."""
        return Port(protocol=Protocol.UDP, from_port=port, to_port=port, string_representation=f"UDP {_render(port)}")

    @staticmethod
    def udp_range(start_port: Number, end_port: Number) -> "Port":
        """A UDP port range."""
        return Port(
            protocol=Protocol.UDP,
            from_port=start_port,
            to_port=end_port,
            string_representation=f"UDP {_render(start_port)}-{_render(end_port)}",
        )

    @staticmethod
    def all_udp() -> "Port":
        """Any UDP traffic."""
        return Port(protocol=Protocol.UDP, from_port=0, to_port=65535, string_representation="UDP ALL PORTS")

    @staticmethod
    def icmp_type_and_code(type: Number, code: Number) -> "Port":
        """A specific combination of ICMP type and code."""
        return Port(
            protocol=Protocol.ICMP,
            from_port=type,
            to_port=code,
            string_representation=f"ICMP Type {_render(type)} Code {_render(code)}",
        )

    @staticmethod
    def icmp_type(type: Number) -> "Port":
        """All codes for a single ICMP type."""
        return Port(
            protocol=Protocol.ICMP,
            from_port=type,
            to_port=-1,
            string_representation=f"ICMP Type {_render(type)}",
        )

    @staticmethod
    def icmp_ping() -> "Port":
        """ICMP ping (echo) traffic."""
        return Port.icmp_type(8)

    @staticmethod
    def all_icmp() -> "Port":
        """All ICMP traffic."""
        return Port(protocol=Protocol.ICMP, from_port=-1, to_port=-1, string_representation="ALL ICMP")

    @staticmethod
    def all_icmp_v6() -> "Port":
        """All ICMPv6 traffic."""
        return Port(protocol=Protocol.ICMPV6, from_port=-1, to_port=-1, string_representation="ALL ICMPv6")

    @staticmethod
    def all_traffic() -> "Port":
        """All traffic."""
        return Port(protocol=Protocol.ALL, string_representation="ALL TRAFFIC")

    @property
    def is_all_traffic(self) -> bool:
        return self.protocol is Protocol.ALL


# well-known ports
Port.SSH = Port.tcp(22)
Port.SMTP = Port.tcp(25)
Port.DNS_UDP = Port.udp(53)
Port.DNS_TCP = Port.tcp(53)
Port.HTTP = Port.tcp(80)
Port.HTTPS = Port.tcp(443)
Port.MYSQL_AURORA = Port.tcp(3306)
Port.POSTGRES = Port.tcp(5432)
