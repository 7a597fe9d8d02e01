"""
NetLens Normalizer Tests
Type coercion, VLAN validation and cross-reference linking.
"""

import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import SchemaViolation
from core.input_handler import InputHandler
from core.models import RawConfig
from core.normalizer import Normalizer
from core.parser_engine import ParserEngine


PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATASETS_DIR = os.path.join(PROJECT_ROOT, "datasets")


def normalize(text, vendor="cisco", file_name="test.conf"):
    raw = RawConfig(file_name, vendor, text)
    return Normalizer().normalize(ParserEngine().parse(raw), vendor, file_name)


def load(*parts):
    raw = InputHandler().load_file(os.path.join(DATASETS_DIR, *parts))
    return Normalizer().normalize(ParserEngine().parse(raw), raw.vendor, raw.file_name), raw


class TestVlanNormalization:
    """VLAN ids are integers in 1-4094."""

    @pytest.mark.parametrize("vlan_id", [1, 10, 1002, 4094])
    def test_valid_ids_kept(self, vlan_id):
        config = normalize(f"vlan {vlan_id}\n name V{vlan_id}\n")
        assert [v.vlan_id for v in config.vlans_svis] == [vlan_id]
        assert isinstance(config.vlans_svis[0].vlan_id, int)

    @pytest.mark.parametrize("vlan_id", [0, 4095, 5000])
    def test_out_of_range_ids_excluded(self, vlan_id):
        config = normalize(f"vlan {vlan_id}\n name BAD\nvlan 10\n")
        assert config.vlan_ids() == {10}
        assert any(str(vlan_id) in w and "out of range" in w for w in config.warnings)

    def test_vlan_list_expands(self):
        config = normalize("vlan 10,20-22\n name SHARED\n")
        assert [v.vlan_id for v in config.vlans_svis] == [10, 20, 21, 22]
        assert all(v.name == "SHARED" for v in config.vlans_svis)

    def test_duplicate_vlan_warns(self):
        config = normalize("vlan 10\n name A\nvlan 10-11\n")
        assert [v.vlan_id for v in config.vlans_svis] == [10, 11]
        assert any("declared more than once" in w for w in config.warnings)

    def test_huge_range_is_clamped(self):
        config = normalize("vlan 1-3000000\n")
        assert len(config.vlans_svis) == 4094
        assert config.vlans_svis[-1].vlan_id == 4094
        clamped = [w for w in config.warnings if "out of range" in w]
        assert clamped == ["VLAN ids 1-3000000 partly out of range 1-4094; kept 1-4094"]

    def test_reversed_range_is_swapped(self):
        config = normalize("vlan 20-10\n name REV\n")
        assert [v.vlan_id for v in config.vlans_svis] == list(range(10, 21))
        assert any("20-10 is reversed" in w for w in config.warnings)

    def test_non_numeric_vlan_is_fatal(self):
        with pytest.raises(SchemaViolation):
            normalize("vlan abc\n name X\n")

    def test_non_numeric_access_vlan_is_fatal(self):
        with pytest.raises(SchemaViolation):
            normalize("interface Gi0/1\n switchport access vlan ten\n")


class TestInterfaceNormalization:
    """Interface fields are coerced, never guessed."""

    def test_status(self):
        config = normalize(
            "interface Gi0/1\n shutdown\n"
            "interface Gi0/2\n no shutdown\n"
            "interface Gi0/3\n description idle\n"
        )
        assert [i.status for i in config.interfaces] == ["down", "up", "unknown"]

    def test_speed_duplex(self):
        config = normalize("interface Gi0/1\n speed 1000\n duplex full\n")
        assert config.interfaces[0].speed_duplex == "1000/full"

    def test_optional_fields_default_to_none(self):
        iface = normalize("interface Gi0/1\n").interfaces[0]
        assert iface.ip_address is None
        assert iface.description is None
        assert iface.access_vlan is None
        assert iface.port_security is None
        assert iface.helper_addresses == []

    def test_duplicate_names_preserved(self):
        config = normalize("interface Gi0/1\n description A\ninterface Gi0/1\n description B\n")
        assert [i.name for i in config.interfaces] == ["Gi0/1", "Gi0/1"]

    def test_helpers_deduplicated_in_order(self):
        config = normalize(
            "interface Vlan10\n ip helper-address 10.0.0.5\n"
            " ip helper-address 10.0.0.6\n ip helper-address 10.0.0.5\n"
        )
        assert config.interfaces[0].helper_addresses == ["10.0.0.5", "10.0.0.6"]

    def test_trunk_fields(self):
        iface = normalize(
            "interface Gi0/1\n switchport mode trunk\n switchport trunk native vlan 99\n"
            " switchport trunk allowed vlan 10,20-21\n switchport trunk allowed vlan add 5\n"
        ).interfaces[0]
        assert iface.native_vlan == 99
        assert iface.trunk_vlans == [10, 20, 21, 5]

    def test_trunk_allowed_keywords_name_no_vlan(self):
        iface = normalize("interface Gi0/1\n switchport trunk allowed vlan all\n").interfaces[0]
        assert iface.trunk_vlans == []


class TestCrossReferences:
    """Second pass links entities declared anywhere in the file."""

    def test_port_channel_member_linked(self):
        config = normalize(
            "interface Gi0/23\n channel-group 1 mode active\n"
            "interface Port-channel1\n description uplink\n"
        )
        member = config.interfaces[0]
        assert member.port_channel_id == "1"
        assert member.port_channel == "Port-channel1"

    def test_unresolved_port_channel_warns(self):
        config = normalize("interface Gi0/24\n channel-group 2 mode active\n")
        assert config.interfaces[0].port_channel is None
        assert any("port-channel 2 is not declared" in w for w in config.warnings)

    def test_svi_linked_to_vlan(self):
        config = normalize(
            "interface Vlan10\n ip address 10.10.10.1 255.255.255.0\n ip helper-address 10.0.0.5\n"
            "vlan 10\n name DATA\n"
        )
        vlan = config.vlans_svis[0]
        assert vlan.svi_interface == "Vlan10"
        assert vlan.svi_ip_address == "10.10.10.1"
        assert vlan.network_range == "10.10.10.0/24"
        assert vlan.helper_addresses == ["10.0.0.5"]

    def test_svi_for_undeclared_vlan_warns(self):
        config = normalize("interface Vlan30\n ip address 10.30.0.1 255.255.255.0\n")
        assert any("VLAN 30 is not declared" in w for w in config.warnings)

    def test_svi_vlan_set_on_routed_interface(self):
        config = normalize(
            "vlan 10\n name DATA\n"
            "interface Vlan10\n ip address 10.10.10.1 255.255.255.0\n"
            "interface Vlan30\n ip address 10.30.0.1 255.255.255.0\n"
            "interface Gi0/1\n description access\n"
        )
        assert [i.svi_vlan for i in config.interfaces] == [10, 30, None]

    def test_junos_trunk_members_resolved(self):
        config = normalize(
            "set interfaces ge-0/0/1 unit 0 family ethernet-switching interface-mode trunk\n"
            "set interfaces ge-0/0/1 unit 0 family ethernet-switching vlan members [ 30 USERS GHOST ]\n"
            "set vlans USERS vlan-id 10\n",
            vendor="junos",
        )
        iface = config.interfaces[0]
        assert iface.access_vlan is None
        assert iface.trunk_vlan_names == ["USERS", "GHOST"]
        assert iface.trunk_vlans == [30, 10]
        assert any("'GHOST' is not declared" in w for w in config.warnings)

    def test_junos_quoted_bracket_keeps_later_statements(self):
        config = normalize(
            "interfaces {\n"
            "    ge-0/0/1 {\n"
            "        description \"uplink [core\";\n"
            "    }\n"
            "    ge-0/0/2 {\n"
            "        description \"access\";\n"
            "    }\n"
            "}\n",
            vendor="junos",
        )
        assert [(i.name, i.description) for i in config.interfaces] == [
            ("ge-0/0/1", "uplink [core"), ("ge-0/0/2", "access"),
        ]

    def test_default_gateway_from_static_route(self):
        config = normalize("ip route 0.0.0.0 0.0.0.0 192.0.2.1\nip route 10.9.0.0 255.255.0.0 10.0.0.2\n")
        static = config.routing_protocols[0]
        assert static.protocol_type == "static"
        assert static.default_gateway == "192.0.2.1"
        assert [r.destination for r in static.static_routes] == ["0.0.0.0/0", "10.9.0.0/16"]

    def test_junos_vlan_name_resolved(self):
        config = normalize(
            "set interfaces ge-0/0/1 unit 0 family ethernet-switching vlan members USERS\n"
            "set vlans USERS vlan-id 10\n",
            vendor="junos",
        )
        iface = config.interfaces[0]
        assert iface.access_vlan == 10
        assert iface.access_vlan_name == "USERS"

    def test_junos_unknown_vlan_name_warns(self):
        config = normalize(
            "set interfaces ge-0/0/1 unit 0 family ethernet-switching vlan members GHOST\n",
            vendor="junos",
        )
        assert config.interfaces[0].access_vlan is None
        assert any("'GHOST' is not declared" in w for w in config.warnings)


class TestSecurityAndServices:
    """Flags keep the difference between off and unknown."""

    def test_http_server_unknown_without_line(self):
        assert normalize("hostname SW1\n").security_features.http_server_disabled is None

    def test_http_server_disabled(self):
        config = normalize("no ip http server\n")
        assert config.security_features.http_server_disabled is True

    def test_http_server_enabled(self):
        config = normalize("ip http server\n")
        assert config.security_features.http_server_disabled is False

    def test_snmp_lines_merged_per_community(self):
        config = normalize(
            "set snmp community mon authorization read-only\n"
            "set snmp community mon clients 10.0.0.0/24\n",
            vendor="junos",
        )
        snmp = config.security_features.snmp_configs
        assert len(snmp) == 1
        assert (snmp[0].community, snmp[0].access, snmp[0].acl) == ("mon", "RO", "10.0.0.0/24")

    def test_services(self):
        config = normalize(
            "ntp server 10.0.0.1\nntp server 10.0.0.1\nip name-server 1.1.1.1 8.8.8.8\n"
            "vtp mode Transparent\nno cdp run\nbanner motd ^CHi^C\n"
        )
        services = config.other_services
        assert services.ntp_servers == ["10.0.0.1"]
        assert services.dns_servers == ["1.1.1.1", "8.8.8.8"]
        assert services.vtp_mode == "transparent"
        assert services.cdp_enabled is False
        assert services.lldp_enabled is None
        assert services.banners == ["motd"]

    def test_unparsed_lines_become_warnings(self):
        config = normalize("hostname SW1\nfrobnicate widgets\n")
        assert config.warnings == ["line 2: unparsed 'frobnicate widgets'"]


class TestDatasets:
    """Sample configurations normalize as expected."""

    def test_junos_set_and_hierarchical_are_identical(self):
        flat, _ = load("junos", "ex_switch_set.conf")
        tree, _ = load("junos", "ex_switch.conf")
        flat_dict, tree_dict = flat.to_dict(), tree.to_dict()
        flat_dict.pop("file_name")
        tree_dict.pop("file_name")
        assert flat_dict == tree_dict
        assert flat.device_info.hostname == "EX-SW2"
        assert [i.name for i in flat.interfaces] == ["ge-0/0/1", "ge-0/0/2", "irb.10"]
        assert flat.vlans_svis[0].network_range == "10.20.10.0/24"
        assert flat.routing_protocols[0].default_gateway == "10.20.10.254"

    def test_arista_leaf(self):
        config, _ = load("arista", "leaf1.eos")
        assert config.vendor == "arista"
        assert config.device_info.hostname == "leaf1"
        assert config.device_info.model == "DCS-7050SX-64"
        assert config.security_features.ssh_configured is True
        assert config.security_features.http_server_disabled is True
        assert config.vlans_svis[0].svi_ip_address == "10.100.0.1"

    def test_extracted_pairs_reach_canonical_config(self):
        """Every extracted device, interface and service value lands at its canonical path."""
        raw = InputHandler().load_file(os.path.join(DATASETS_DIR, "cisco", "core_router.conf"))
        extracted = ParserEngine().parse(raw)
        config = Normalizer().normalize(extracted, raw.vendor, raw.file_name)

        interfaces = dict(zip(extracted.entities("interfaces"), config.interfaces))
        checked = 0
        for path, value in extracted.items():
            if path[0] == "device":
                assert getattr(config.device_info, path[1]) == value
            elif path[0] == "interfaces" and path[2] in ("name", "description", "ip_address",
                                                          "subnet_mask", "status"):
                assert getattr(interfaces[path[1]], path[2]) == value
            elif path[0] == "interfaces" and path[2] == "access_groups":
                assert value in interfaces[path[1]].access_groups
            elif path[0] == "services" and path[1] in ("ntp_servers", "dns_servers", "banners"):
                assert value in getattr(config.other_services, path[1])
            elif path[0] == "acls":
                acl = next(a for a in config.security_features.acls if a.name == path[1])
                if path[2] == "entries":
                    assert value in acl.entries
                else:
                    assert getattr(acl, path[2]) == value
            else:
                continue
            checked += 1
        assert checked > 15


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
