import pytest
from cdktf import Token

from terraconstructs import UnscopedValidationError, ValidationError
from terraconstructs.aws.compute import Peer, Port, Protocol, SecurityGroup

ALL_OUTBOUND = {
    "cidr_blocks": ["0.0.0.0/0"],
    "ipv6_cidr_blocks": [],
    "prefix_list_ids": [],
    "security_groups": [],
    "self": False,
    "description": "Allow all outbound traffic by default",
    "protocol": "-1",
    "from_port": 0,
    "to_port": 0,
}


def _single(items):
    assert len(items) == 1
    return items[0]


# ====== PORTS ======

@pytest.mark.parametrize("port, text, rule", [
    (Port.tcp(22), "22", {"protocol": "tcp", "from_port": 22, "to_port": 22}),
    (Port.tcp_range(80, 90), "80-90", {"protocol": "tcp", "from_port": 80, "to_port": 90}),
    (Port.all_tcp(), "ALL PORTS", {"protocol": "tcp", "from_port": 0, "to_port": 65535}),
    (Port.udp(53), "UDP 53", {"protocol": "udp", "from_port": 53, "to_port": 53}),
    (Port.icmp_ping(), "ICMP Type 8", {"protocol": "icmp", "from_port": 8, "to_port": -1}),
    (Port.icmp_type_and_code(3, 4), "ICMP Type 3 Code 4", {"protocol": "icmp", "from_port": 3, "to_port": 4}),
    (Port.all_icmp_v6(), "ALL ICMPv6", {"protocol": "58", "from_port": -1, "to_port": -1}),
    (Port.all_traffic(), "ALL TRAFFIC", {"protocol": "-1", "from_port": 0, "to_port": 0}),
])
def test_port_rendering(port, text, rule):
    assert str(port) == text
    assert port.to_rule_json() == rule


def test_port_equality_and_constants():
    assert Port.tcp(443) == Port.HTTPS
    assert Port.tcp(53) != Port.DNS_UDP
    assert Port.all_traffic().is_all_traffic
    assert Port.POSTGRES.protocol is Protocol.TCP


def test_token_port_renders_placeholder(stack):
    port = Port.tcp(Token.as_number(stack.region))

    assert str(port) == "{IndirectPort}"


# ====== PEERS ======

def test_peer_rule_configs():
    assert Peer.ipv4("10.0.0.0/16").to_ingress_rule_config() == {"cidr_blocks": ["10.0.0.0/16"]}
    assert Peer.any_ipv6().to_egress_rule_config() == {"ipv6_cidr_blocks": ["::/0"]}
    assert Peer.prefix_list("pl-12345").to_ingress_rule_config() == {"prefix_list_ids": ["pl-12345"]}
    assert Peer.security_group_id("sg-12345678").to_ingress_rule_config() == {"security_groups": ["sg-12345678"]}
    assert str(Peer.any_ipv4()) == "0.0.0.0/0"


@pytest.mark.parametrize("factory, value, message", [
    (Peer.ipv4, "10.0.0.1", 'CIDR mask is missing in IPv4: "10.0.0.1". Did you mean "10.0.0.1/32"?'),
    (Peer.ipv4, "10.0.0.300/16", 'Invalid IPv4 CIDR: "10.0.0.300/16"'),
    (Peer.ipv6, "::1", 'CIDR mask is missing in IPv6: "::1". Did you mean "::1/128"?'),
    (Peer.security_group_id, "group-1", 'Invalid security group ID: "group-1"'),
])
def test_peer_validation(factory, value, message):
    with pytest.raises(UnscopedValidationError) as excinfo:
        factory(value)

    assert excinfo.value.message == message


def test_security_group_owner_validation():
    with pytest.raises(UnscopedValidationError, match='Invalid security group owner ID: "abc"'):
        Peer.security_group_id("sg-12345678", "abc")


# ====== SECURITY GROUPS ======

def test_default_security_group(stack, synth, resources):
    SecurityGroup(stack, "MySG", vpc_id="vpc-12345")

    group = _single(resources(synth(stack), "aws_security_group"))
    assert group["name_prefix"] == "Grid-MySG"
    assert group["description"] == "Default/MySG"
    assert group["vpc_id"] == "vpc-12345"
    assert "ingress" not in group
    assert group["egress"] == [ALL_OUTBOUND]


def test_ingress_rules_are_inline_and_deduplicated(stack, synth, resources):
    group = SecurityGroup(stack, "MySG", security_group_name="web")

    group.add_ingress_rule(Peer.any_ipv4(), Port.HTTPS)
    group.add_ingress_rule(Peer.any_ipv4(), Port.tcp(443), "duplicate")
    group.add_ingress_rule(Peer.ipv6("2001:db8::/32"), Port.HTTP, "web v6")

    rendered = _single(resources(synth(stack), "aws_security_group"))
    assert rendered["name"] == "web"
    assert rendered["ingress"] == [
        {**ALL_OUTBOUND, "description": "from 0.0.0.0/0:443", "protocol": "tcp", "from_port": 443, "to_port": 443},
        {
            **ALL_OUTBOUND,
            "cidr_blocks": [],
            "ipv6_cidr_blocks": ["2001:db8::/32"],
            "description": "web v6",
            "protocol": "tcp",
            "from_port": 80,
            "to_port": 80,
        },
    ]


def test_egress_rules_ignored_while_all_outbound_allowed(stack, synth, resources):
    group = SecurityGroup(stack, "MySG")

    group.add_egress_rule(Peer.ipv4("10.0.0.0/16"), Port.POSTGRES)

    assert _single(resources(synth(stack), "aws_security_group"))["egress"] == [ALL_OUTBOUND]
    warnings = [m.data for m in group.node.metadata if m.type == "@cdktf/warn"]
    assert any("Ignoring Egress rule since 'allowAllOutbound' is set to true" in w for w in warnings)


def test_restricted_egress(stack, synth, resources):
    group = SecurityGroup(stack, "MySG", allow_all_outbound=False, allow_all_ipv6_outbound=True)

    group.add_egress_rule(Peer.ipv4("10.0.0.0/16"), Port.POSTGRES)
    group.add_egress_rule(Peer.any_ipv6(), Port.HTTPS)

    egress = _single(resources(synth(stack), "aws_security_group"))["egress"]
    assert [rule["description"] for rule in egress] == [
        "Allow all outbound ipv6 traffic by default",
        "to 10.0.0.0/16:5432",
    ]
    assert egress[1]["cidr_blocks"] == ["10.0.0.0/16"]


def test_no_egress_rules_when_outbound_disallowed(stack, synth, resources):
    SecurityGroup(stack, "MySG", allow_all_outbound=False)

    assert _single(resources(synth(stack), "aws_security_group")).get("egress", []) == []


def test_all_traffic_egress_rule_is_rejected(stack):
    group = SecurityGroup(stack, "MySG", allow_all_outbound=False)

    with pytest.raises(ValidationError, match="Cannot add an 'all traffic' egress rule in this way"):
        group.add_egress_rule(Peer.any_ipv4(), Port.all_traffic())


def test_security_group_as_peer(stack, synth, resources):
    database = SecurityGroup(stack, "Database")
    app = SecurityGroup(stack, "App")

    database.add_ingress_rule(app, Port.POSTGRES)

    groups = resources(synth(stack), "aws_security_group")
    rule = next(g for g in groups if "ingress" in g)["ingress"][0]
    assert rule["security_groups"][0].startswith("${aws_security_group.App_")
    assert rule["description"] == f"from {app.node.addr}:5432"
    assert SecurityGroup.is_security_group(app)


# ====== IMPORTED SECURITY GROUPS ======

def test_mutable_import_creates_standalone_rules(stack, synth, resources):
    group = SecurityGroup.from_security_group_id(stack, "Imported", "sg-12345678", allow_all_outbound=False)

    group.add_ingress_rule(Peer.ipv4("10.0.0.0/16"), Port.HTTPS)
    group.add_egress_rule(Peer.prefix_list("pl-12345"), Port.all_traffic(), "to endpoints")

    template = synth(stack)
    ingress = _single(resources(template, "aws_vpc_security_group_ingress_rule"))
    ingress = {k: v for k, v in ingress.items() if k != "//"}
    assert ingress == {
        "security_group_id": "sg-12345678",
        "ip_protocol": "tcp",
        "from_port": 443,
        "to_port": 443,
        "cidr_ipv4": "10.0.0.0/16",
        "description": "from 10.0.0.0/16:443",
    }
    egress = _single(resources(template, "aws_vpc_security_group_egress_rule"))
    egress = {k: v for k, v in egress.items() if k != "//"}
    assert egress == {
        "security_group_id": "sg-12345678",
        "ip_protocol": "-1",
        "prefix_list_id": "pl-12345",
        "description": "to endpoints",
    }
    assert resources(template, "aws_security_group") == []


def test_immutable_import_ignores_rules(stack, synth, resources):
    group = SecurityGroup.from_security_group_id(stack, "Imported", "sg-12345678", mutable=False)

    group.add_ingress_rule(Peer.any_ipv4(), Port.SSH)

    assert resources(synth(stack), "aws_vpc_security_group_ingress_rule") == []
