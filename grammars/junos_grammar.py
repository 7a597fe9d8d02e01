"""
JunOS Configuration Grammar
Pattern rules for Juniper JunOS configurations, both set-style and
hierarchical (curly-brace). Hierarchical statements are matched against
their full path, so both styles share one rule table.
"""

import ipaddress
import re
from typing import List, Optional, Tuple

from core.models import LogicalLine  # pyre-ignore
from grammars.base import GrammarRule, VendorGrammar, unquote  # pyre-ignore


# First path word -> block context
SECTION_CONTEXTS = {
    "system": "system",
    "interfaces": "interface",
    "vlans": "vlan",
    "protocols": "protocol",
    "routing-options": "routing",
    "snmp": "snmp",
    "firewall": "acl",
    "version": "global",
}

_UNIT = re.compile(r"^interfaces (\S+) unit (\d+)\b")


def _address(match):
    return match.group(2).split("/")[0]


def _netmask(match):
    if "/" not in match.group(2):
        return None
    try:
        return str(ipaddress.IPv4Network("0.0.0.0/" + match.group(2).split("/")[1]).netmask)
    except ValueError:
        return None


def _unquoted(group: int):
    return lambda m: unquote(m.group(group))


def _outside_quotes(text: str) -> str:
    """Text with double-quoted spans removed."""
    return "".join(part for i, part in enumerate(text.split('"')) if i % 2 == 0)


class JunosGrammar(VendorGrammar):
    """Grammar for Juniper JunOS configuration files."""

    name = "junos"
    display_name = "Juniper JunOS"

    INDENT_SCOPED = False
    HEADERS_CARRY_DATA = False

    COMMENT_PATTERNS = [
        r"^#",
        r"^/\*",
        r"^\*",
    ]

    BLOCK_END_PATTERNS = [
        r"^\}\s*;?$",
    ]

    SIGNATURES = [
        r"^set\s+system\s+",
        r"^set\s+interfaces\s+",
        r"^set\s+firewall\s+",
        r"^set\s+protocols\s+",
        r"^set\s+security\s+",
        r"^set\s+routing-options\s+",
        r"^set\s+vlans\s+",
        r"^system\s*\{",
        r"^interfaces\s*\{",
        r"^protocols\s*\{",
        r"^security\s*\{",
        r"^vlans\s*\{",
    ]

    def build_rules(self) -> List[GrammarRule]:
        iface = r"^interfaces (\S+)"
        return [
            GrammarRule(r"^version\s+(\S+)$", [("device.os_version", 1)]),
            GrammarRule(r"^system host-name\s+(\S+)$", [("device.hostname", _unquoted(1))]),
            GrammarRule(r"^system (?:root-authentication|login user \S+ authentication) encrypted-password\b",
                        [("security.password_encryption_enabled", "true")]),
            GrammarRule(r"^system (?:authentication-order|radius-server|tacplus-server)\b",
                        [("security.aaa_configured", "true")]),
            GrammarRule(r"^system services ssh\b", [("security.ssh_configured", "true")]),
            GrammarRule(r"^system services telnet\b", [("security.vty_transport[]", "telnet")]),
            GrammarRule(r"^system services web-management http(?:\s|$)",
                        [("security.http_server_disabled", "false")]),
            GrammarRule(r"^system ntp server\s+(\S+)", [("services.ntp_servers[]", 1)]),
            GrammarRule(r"^system name-server\s+(\S+)", [("services.dns_servers[]", 1)]),
            GrammarRule(r"^system login message\b", [("services.banners[]", "login")]),
            GrammarRule(r"^system login announcement\b", [("services.banners[]", "motd")]),
            GrammarRule(r"^snmp community\s+(\S+)\s+authorization\s+(read-only|read-write)$",
                        [("security.snmp_configs[]",
                          lambda m: (unquote(m.group(1)), "RO" if m.group(2) == "read-only" else "RW", None, "v2c"))]),
            GrammarRule(r"^snmp community\s+(\S+)\s+clients\s+(\S+)",
                        [("security.snmp_configs[]", lambda m: (unquote(m.group(1)), None, m.group(2), "v2c"))]),

            GrammarRule(iface + r" description\s+(.+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.description", _unquoted(2))]),
            GrammarRule(iface + r" family inet address\s+(\S+)",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.ip_address", _address),
                         ("interfaces.{1}.subnet_mask", _netmask)]),
            GrammarRule(iface + r" disable$", [("interfaces.{1}.name", 1), ("interfaces.{1}.status", "down")]),
            GrammarRule(iface + r" (?:ether|gigether)-options speed\s+(\S+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.speed", 2)]),
            GrammarRule(iface + r" (?:ether|gigether)-options link-mode\s+(\S+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.duplex", 2)]),
            GrammarRule(iface + r" (?:ether|gigether)-options (?:ieee-)?802\.3ad\s+(\S+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.port_channel_id", 2)]),
            GrammarRule(iface + r" family ethernet-switching (?:interface-mode|port-mode)\s+(\S+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.switchport_mode", 2)]),
            GrammarRule(iface + r" family ethernet-switching vlan members\s+\[\s*(.*?)\s*\]$",
                        [("interfaces.{1}.name", 1),
                         ("interfaces.{1}.vlan_members[]", lambda m: [unquote(w) for w in m.group(2).split()])]),
            GrammarRule(iface + r" family ethernet-switching vlan members\s+(\S+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.vlan_members[]", _unquoted(2))]),
            GrammarRule(iface + r" (?:family ethernet-switching )?native-vlan-id\s+(\d+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.native_vlan", 2)]),
            GrammarRule(iface + r" family inet filter (?:input|output)\s+(\S+)$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.access_groups[]", 2)]),
            GrammarRule(iface + r"$", [("interfaces.{1}.name", 1)]),

            GrammarRule(r"^vlans (\S+) vlan-id\s+(\S+)$",
                        [("vlans.{1}.name", _unquoted(1)), ("vlans.{1}.vlan_id", 2)]),
            GrammarRule(r"^vlans (\S+) l3-interface\s+(\S+)$",
                        [("vlans.{1}.name", _unquoted(1)), ("vlans.{1}.svi_interface", 2)]),
            GrammarRule(r"^vlans (\S+)$", [("vlans.{1}.name", _unquoted(1))]),

            GrammarRule(r"^routing-options static route\s+(\S+)\s+next-hop\s+(\S+)$",
                        [("routing.static.protocol_type", "static"),
                         ("routing.static.static_routes[]", lambda m: (m.group(1), m.group(2)))]),
            GrammarRule(r"^protocols (ospf3?|bgp|isis|rip|ripng)\b(?:\s+(.+))?$",
                        [("routing.{1}.protocol_type", 1), ("routing.{1}.networks[]", 2)]),
            GrammarRule(r"^protocols lldp disable$", [("services.lldp_enabled", "false")]),
            GrammarRule(r"^protocols lldp\b", [("services.lldp_enabled", "true")]),
            GrammarRule(r"^protocols layer2-control bpdu-block interface (\S+?)(?:\.0)?$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.bpdu_guard", "true")]),
            GrammarRule(r"^protocols (?:rstp|stp|mstp) bpdu-block-on-edge$",
                        [("security.bpdu_guard_default", "true")]),
            GrammarRule(r"^protocols (?:rstp|stp|mstp) interface (\S+?)(?:\.0)? edge$",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.portfast", "true")]),
            GrammarRule(r"^(?:ethernet-switching-options secure-access-port|switch-options) "
                        r"interface (\S+?)(?:\.0)? (?:interface-)?mac-limit\b",
                        [("interfaces.{1}.name", 1), ("interfaces.{1}.port_security", "true")]),

            GrammarRule(r"^firewall (?:family (\S+) )?filter (\S+) (term .+)$",
                        [("acls.{2}.name", 2),
                         ("acls.{2}.acl_type", lambda m: f"{m.group(1) or 'inet'} filter"),
                         ("acls.{2}.entries[]", 3)]),
        ]

    # --- Tokenizer hooks ---

    def is_continued(self, buffer: str) -> bool:
        stripped = buffer.strip()
        if stripped.startswith(("set ", "delete ", "deactivate ", "activate ")):
            return super().is_continued(buffer)
        if stripped.endswith("\\"):
            return True
        if stripped.endswith((";", "{", "}")):
            return False
        # Bracketed lists may wrap across lines
        unquoted = _outside_quotes(stripped)
        return unquoted.count("[") > unquoted.count("]")

    def join_continuation(self, buffer: str, physical: str) -> str:
        stripped = buffer.rstrip()
        if stripped.endswith("\\"):
            stripped = stripped[:-1]
        return stripped.rstrip() + " " + physical.strip()

    def clean(self, stripped: str) -> str:
        statement = stripped
        if statement.startswith("set "):
            statement = statement[4:]
        return statement.rstrip("{;").strip()

    def classify(self, statement: str) -> str:
        first = statement.split(None, 1)[0] if statement else ""
        return SECTION_CONTEXTS.get(first, "global")

    def match_block_start(self, stripped: str, parents: Tuple[str, ...]) -> Optional[str]:
        if not stripped.endswith("{"):
            return None
        path = " ".join(parents + (self.clean(stripped),))
        return SECTION_CONTEXTS.get(path.split()[0], "other")

    # --- Extraction hooks ---

    def statement(self, line: LogicalLine) -> str:
        full = " ".join(line.parents + (line.text,))
        return _UNIT.sub(self._unit_name, full)

    @staticmethod
    def _unit_name(match) -> str:
        if match.group(2) == "0":
            return f"interfaces {match.group(1)}"
        return f"interfaces {match.group(1)}.{match.group(2)}"

    def extract_field(self, line: LogicalLine):
        # Block headers only name a path; the leaves below them carry the data
        if line.opens_block:
            return []
        return super().extract_field(line)

    def svi_vlan_id(self, interface_name: str) -> Optional[int]:
        match = re.fullmatch(r"(?:irb|vlan)\.(\d+)", interface_name.strip())
        return int(match.group(1)) if match else None
