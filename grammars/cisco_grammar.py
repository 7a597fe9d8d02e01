"""
Cisco IOS Configuration Grammar
Pattern rules for Cisco IOS/IOS-XE style running configurations.
"""

import ipaddress
import re
from typing import List, Optional, Tuple

from core.models import LogicalLine  # pyre-ignore
from grammars.base import GrammarRule, VendorGrammar  # pyre-ignore


IPV4 = r"\d{1,3}(?:\.\d{1,3}){3}"


def _snmp_community(match):
    access = match.group(2).upper() if match.group(2) else None
    return (match.group(1), access, match.group(3), "v2c")


def _static_route(match):
    destination, mask, next_hop = match.group(1), match.group(2), match.group(3)
    try:
        network = str(ipaddress.IPv4Network(f"{destination}/{mask}", strict=False))
    except ValueError:
        network = f"{destination} {mask}"
    return (network, next_hop)


def _words(group: int):
    return lambda m: m.group(group).split()


def _lower(group: int):
    return lambda m: m.group(group).lower()


class CiscoGrammar(VendorGrammar):
    """Grammar for Cisco IOS configuration files."""

    name = "cisco"
    display_name = "Cisco IOS"

    INDENT_SCOPED = True

    COMMENT_PATTERNS = [
        r"^!",
        r"^Building\s+configuration",
        r"^Current\s+configuration",
    ]

    BLOCK_END_PATTERNS = [
        r"^exit(-address-family|-vrf|-peer-policy|-peer-session)?$",
        r"^end$",
    ]

    SIGNATURES = [
        r"^hostname\s+\S+",
        r"^enable\s+(secret|password)\s+",
        r"^interface\s+(Ethernet|GigabitEthernet|FastEthernet|Loopback|Vlan|Serial|Port-channel)",
        r"^ip\s+route\s+",
        r"^ip\s+ssh\s+version",
        r"^line\s+(con|vty|aux)\s+",
        r"^router\s+(ospf|eigrp|bgp|rip)\s+",
        r"^access-list\s+\d+",
        r"^snmp-server\s+",
        r"^banner\s+(motd|login|exec)\s+",
        r"^service\s+(timestamps|password-encryption)",
        r"^no\s+ip\s+http\s+server",
        r"^switchport\s+mode\s+",
        r"^ntp\s+server\s+",
    ]

    # Top-level headers that open a keyed block
    BLOCK_HEADERS = [
        (r"^interface\s+\S+", "interface"),
        (r"^vlan\s+\S+$", "vlan"),
        (r"^router\s+\S+", "router"),
        (r"^ip\s+access-list\s+(standard|extended)\s+\S+", "acl"),
        (r"^line\s+\S+", "line"),
    ]

    _BANNER = re.compile(r"^banner\s+\S+\s+(\^C|\S)", re.IGNORECASE)

    def __init__(self):
        self._headers = [(re.compile(p, re.IGNORECASE), ctx) for p, ctx in self.BLOCK_HEADERS]
        super().__init__()

    def build_rules(self) -> List[GrammarRule]:
        return self.global_rules() + self.interface_rules() + self.block_rules()

    def global_rules(self) -> List[GrammarRule]:
        g = "global"
        return [
            GrammarRule(r"^hostname\s+(\S+)$", [("device.hostname", 1)], g),
            GrammarRule(r"^version\s+(\S+)$", [("device.os_version", 1)], g),
            GrammarRule(r"^license udi pid\s+(\S+)\s+sn\s+(\S+)$",
                        [("device.model", 1), ("device.serial_number", 2)], g),
            GrammarRule(r"^\S+\s+uptime is\s+(.+)$", [("device.uptime", 1)], g),
            GrammarRule(r"^service password-encryption$",
                        [("security.password_encryption_enabled", "true")], g),
            GrammarRule(r"^no service password-encryption$",
                        [("security.password_encryption_enabled", "false")], g),
            GrammarRule(r"^aaa new-model$", [("security.aaa_configured", "true")], g),
            GrammarRule(r"^no aaa new-model$", [("security.aaa_configured", "false")], g),
            GrammarRule(r"^ip ssh\s+\S+", [("security.ssh_configured", "true")], g),
            GrammarRule(r"^no ip http server$", [("security.http_server_disabled", "true")], g),
            GrammarRule(r"^ip http server$", [("security.http_server_disabled", "false")], g),
            GrammarRule(r"^snmp-server community\s+(\S+)(?:\s+view\s+\S+)?(?:\s+(RO|RW))?(?:\s+(\S+))?$",
                        [("security.snmp_configs[]", _snmp_community)], g),
            GrammarRule(r"^snmp-server group\s+(\S+)\s+v3\s+\S+",
                        [("security.snmp_configs[]", lambda m: (m.group(1), None, None, "v3"))], g),
            GrammarRule(r"^spanning-tree portfast (?:edge )?bpduguard default$",
                        [("security.bpdu_guard_default", "true")], g),
            GrammarRule(r"^access-list\s+(\S+)\s+(.+)$",
                        [("acls.{1}.name", 1), ("acls.{1}.acl_type", "numbered"),
                         ("acls.{1}.entries[]", 2)], g),
            GrammarRule(rf"^ip route\s+({IPV4})\s+({IPV4})\s+(\S+)",
                        [("routing.static.protocol_type", "static"),
                         ("routing.static.static_routes[]", _static_route)], g),
            GrammarRule(r"^ip default-gateway\s+(\S+)$",
                        [("routing.static.protocol_type", "static"),
                         ("routing.static.default_gateway", 1)], g),
            GrammarRule(r"^ntp server\s+(?:vrf\s+\S+\s+)?(\S+)", [("services.ntp_servers[]", 1)], g),
            GrammarRule(r"^ip name-server\s+(?:vrf\s+\S+\s+)?(.+)$", [("services.dns_servers[]", _words(1))], g),
            GrammarRule(r"^vtp mode\s+(\S+)$", [("services.vtp_mode", _lower(1))], g),
            GrammarRule(r"^cdp run$", [("services.cdp_enabled", "true")], g),
            GrammarRule(r"^no cdp run$", [("services.cdp_enabled", "false")], g),
            GrammarRule(r"^lldp run$", [("services.lldp_enabled", "true")], g),
            GrammarRule(r"^no lldp run$", [("services.lldp_enabled", "false")], g),
            GrammarRule(r"^banner\s+(\S+)", [("services.banners[]", _lower(1))], g),
        ]

    def interface_rules(self) -> List[GrammarRule]:
        i = "interface"
        return [
            GrammarRule(r"^interface\s+(.+)$", [("interfaces.*.name", lambda m: m.group(1).strip())], i),
            GrammarRule(r"^description\s+(.+)$", [("interfaces.*.description", 1)], i),
            GrammarRule(r"^ip address\s+(\S+)\s+(\S+)$",
                        [("interfaces.*.ip_address", 1), ("interfaces.*.subnet_mask", 2)], i),
            GrammarRule(r"^shutdown$", [("interfaces.*.status", "down")], i),
            GrammarRule(r"^no shutdown$", [("interfaces.*.status", "up")], i),
            GrammarRule(r"^speed\s+(\S+)$", [("interfaces.*.speed", 1)], i),
            GrammarRule(r"^duplex\s+(\S+)$", [("interfaces.*.duplex", 1)], i),
            GrammarRule(r"^channel-group\s+(\d+)", [("interfaces.*.port_channel_id", 1)], i),
            GrammarRule(r"^switchport mode\s+(\S+)$", [("interfaces.*.switchport_mode", _lower(1))], i),
            GrammarRule(r"^switchport access vlan\s+(\S+)$", [("interfaces.*.access_vlan", 1)], i),
            GrammarRule(r"^switchport voice vlan\s+(\S+)$", [("interfaces.*.voice_vlan", 1)], i),
            GrammarRule(r"^switchport trunk native vlan\s+(\S+)$", [("interfaces.*.native_vlan", 1)], i),
            GrammarRule(r"^switchport trunk allowed vlan(?:\s+add)?\s+([\d,\-]+|all|none)$",
                        [("interfaces.*.trunk_allowed[]", 1)], i),
            GrammarRule(r"^switchport port-security(\s|$)", [("interfaces.*.port_security", "true")], i),
            GrammarRule(r"^spanning-tree bpduguard enable$", [("interfaces.*.bpdu_guard", "true")], i),
            GrammarRule(r"^spanning-tree bpduguard disable$", [("interfaces.*.bpdu_guard", "false")], i),
            GrammarRule(r"^spanning-tree portfast(?: edge)?$", [("interfaces.*.portfast", "true")], i),
            GrammarRule(r"^ip helper-address\s+(\S+)$", [("interfaces.*.helper_addresses[]", 1)], i),
            GrammarRule(r"^ip access-group\s+(\S+)\s+(?:in|out)$", [("interfaces.*.access_groups[]", 1)], i),
        ]

    def block_rules(self) -> List[GrammarRule]:
        return [
            GrammarRule(r"^vlan\s+(\S+)$", [("vlans.*.vlan_id", 1)], "vlan"),
            GrammarRule(r"^name\s+(\S+)$", [("vlans.*.name", 1)], "vlan"),
            GrammarRule(r"^router\s+(\S+)(?:\s+(\S+))?",
                        [("routing.*.protocol_type", _lower(1)), ("routing.*.process_id", 2)], "router"),
            GrammarRule(r"^network\s+(.+)$", [("routing.*.networks[]", 1)], "router"),
            GrammarRule(r"^ip access-list\s+(standard|extended)\s+(\S+)$",
                        [("acls.{2}.name", 2), ("acls.{2}.acl_type", _lower(1))], "acl"),
            GrammarRule(r"^(?:\d+\s+)?(?:permit|deny|remark)\b.*$", [("acls.*.entries[]", 0)], "acl"),
            GrammarRule(r"^transport input\s+(.+)$", [("security.vty_transport[]", _words(1))], "line"),
            GrammarRule(r"^access-class\s+(\S+)\s+in\b", [("security.vty_access_classes[]", 1)], "line"),
        ]

    # --- Tokenizer hooks ---

    def is_continued(self, buffer: str) -> bool:
        match = self._BANNER.match(buffer.strip())
        if match:
            delimiter = match.group(1)
            body = buffer.strip()[match.end():]
            return delimiter not in body
        return super().is_continued(buffer)

    def match_block_start(self, stripped: str, parents: Tuple[str, ...]) -> Optional[str]:
        if parents:
            return None
        for regex, context in self._headers:
            if regex.match(stripped):
                return context
        return None

    # --- Extraction hooks ---

    def block_key(self, line: LogicalLine) -> Optional[str]:
        header = line.parents[0] if line.parents else line.text
        words = header.split()
        if line.context == "interface" and len(words) > 1:
            # Duplicate interface stanzas stay separate entries
            return f"{header.split(None, 1)[1].strip()}@{line.block_line}"
        if line.context == "vlan" and len(words) > 1:
            return words[1]
        if line.context == "router" and len(words) > 1:
            return " ".join(words[1:3])
        if line.context == "acl" and len(words) > 3:
            return words[3]
        return None

    def is_aggregate_of(self, interface_name: str, channel_id: str) -> bool:
        return re.fullmatch(rf"po(?:rt-channel)?\s*{re.escape(channel_id)}",
                            interface_name.strip(), re.IGNORECASE) is not None

    def svi_vlan_id(self, interface_name: str) -> Optional[int]:
        match = re.fullmatch(r"vlan\s*(\d+)", interface_name.strip(), re.IGNORECASE)
        return int(match.group(1)) if match else None
