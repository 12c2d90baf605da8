from .peer import CidrIPv4, CidrIPv6, Peer, PrefixList, SecurityGroupId
from .port import Port, Protocol
from .security_group import ImportedSecurityGroup, SecurityGroup, SecurityGroupBase
