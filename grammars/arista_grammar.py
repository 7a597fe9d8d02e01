"""
Arista EOS Configuration Grammar
EOS follows IOS syntax closely; this grammar reuses the Cisco rule
table and adds the EOS management stanzas and AAA conventions.
"""

import ipaddress
import re
from typing import List

from core.models import LogicalLine  # pyre-ignore
from grammars.base import GrammarRule  # pyre-ignore
from grammars.cisco_grammar import CiscoGrammar  # pyre-ignore


def _prefix_mask(match):
    try:
        return str(ipaddress.IPv4Network(f"0.0.0.0/{match.group(2)}").netmask)
    except ValueError:
        return None


class AristaGrammar(CiscoGrammar):
    """Grammar for Arista EOS configuration files."""

    name = "arista"
    display_name = "Arista EOS"

    # '! device: leaf1 (DCS-7050SX-64, EOS-4.20.5F)' carries model and version
    _DEVICE_BANNER = re.compile(r"^!\s*device:", re.IGNORECASE)

    SIGNATURES = [
        r"^!\s*device:.*EOS-",
        r"^daemon\s+TerminAttr",
        r"^transceiver\s+qsfp\s+default-mode",
        r"^management\s+api\s+http-commands",
        r"^no\s+aaa\s+root",
        r"^username\s+\S+\s+privilege\s+\d+\s+role\s+",
    ]
    SIGNATURE_WEIGHT = 3.0

    BLOCK_HEADERS = CiscoGrammar.BLOCK_HEADERS + [
        (r"^management\s+\S+", "management"),
    ]

    def build_rules(self) -> List[GrammarRule]:
        arista_global = [
            GrammarRule(r"^!\s*device:\s+(\S+)\s+\(([^,]+),\s*EOS-([^)]+)\)",
                        [("device.hostname", 1), ("device.model", 2), ("device.os_version", 3)], "global"),
            GrammarRule(r"^aaa (?:authentication|authorization|accounting)\b",
                        [("security.aaa_configured", "true")], "global"),
            GrammarRule(r"^ip address\s+(\S+)/(\d{1,2})$",
                        [("interfaces.*.ip_address", 1), ("interfaces.*.subnet_mask", _prefix_mask)], "interface"),
        ]
        management = [
            GrammarRule(r"^management ssh$", [("security.ssh_configured", "true")], "management"),
            GrammarRule(r"^management telnet no shutdown$",
                        [("security.vty_transport[]", "telnet")], "management"),
            GrammarRule(r"^management api http-commands no protocol http$",
                        [("security.http_server_disabled", "true")], "management"),
            GrammarRule(r"^management api http-commands protocol http$",
                        [("security.http_server_disabled", "false")], "management"),
        ]
        return arista_global + super().build_rules() + management

    def is_comment(self, stripped: str) -> bool:
        if self._DEVICE_BANNER.match(stripped):
            return False
        return super().is_comment(stripped)

    def statement(self, line: LogicalLine) -> str:
        # Management stanzas are matched with their header as a prefix
        if line.context == "management" and line.parents:
            return f"{line.parents[0]} {line.text}"
        return line.text
