"""
NetLens Rule Engine & Finding Ranker Tests
Catalog integrity, individual detection rules and finding finalization.
"""

import logging
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.finding_ranker import FindingRanker
from core.models import (
    BEST_PRACTICE, CONFLICT, FINDING_TYPES, SECURITY_RISK, SEVERITIES, SUGGESTION,
    CanonicalConfig, Finding, Interface, Issue, RawConfig, Rule,
)
from core.normalizer import Normalizer
from core.parser_engine import ParserEngine
from core.rule_catalog import RULE_CATALOG, rule
from core.rule_engine import RuleEngine


def normalize(text, vendor="cisco"):
    raw = RawConfig("test.conf", vendor, text)
    return Normalizer().normalize(ParserEngine().parse(raw), vendor, raw.file_name)


def evaluate(text, vendor="cisco"):
    return RuleEngine().evaluate(normalize(text, vendor))


def by_rule(findings, rule_id):
    return [f for f in findings if f.rule_id == rule_id]


class TestRuleCatalog:
    """The catalog is static and self-consistent."""

    def test_rule_ids_unique(self):
        ids = [r.rule_id for r in RULE_CATALOG]
        assert len(ids) == len(set(ids)) == 23

    def test_types_and_severities_valid(self):
        for r in RULE_CATALOG:
            assert r.finding_type in FINDING_TYPES
            assert r.severity in SEVERITIES
            assert r.recommendation

    def test_invalid_registration_rejected(self):
        with pytest.raises(ValueError):
            rule("X-001", "bad", "security", "Bogus", "High")
        with pytest.raises(ValueError):
            rule("X-002", "bad", "security", SECURITY_RISK, "Severe")


class TestSecurityRules:
    """Security risk detection."""

    def test_password_encryption_missing(self):
        findings = by_rule(evaluate("hostname SW1\n"), "SEC-001")
        assert len(findings) == 1
        assert findings[0].type == SECURITY_RISK
        assert findings[0].severity == "High"
        assert findings[0].devices_involved == ["SW1"]

    def test_password_encryption_present(self):
        assert by_rule(evaluate("hostname SW1\nservice password-encryption\n"), "SEC-001") == []

    def test_junos_encrypted_password(self):
        findings = evaluate("set system root-authentication encrypted-password \"$6$x\"\n", "junos")
        assert by_rule(findings, "SEC-001") == []

    def test_snmp_communities(self):
        findings = evaluate("snmp-server community public RO\nsnmp-server community Xy9RW RW 99\n")
        assert len(by_rule(findings, "SEC-002")) == 1
        assert by_rule(findings, "SEC-003")[0].details["community"] == "Xy9RW"
        assert [f.details["community"] for f in by_rule(findings, "SEC-004")] == ["public"]

    def test_http_server(self):
        assert by_rule(evaluate("no ip http server\n"), "SEC-005") == []
        assert "enabled" in by_rule(evaluate("ip http server\n"), "SEC-005")[0].description
        assert "not explicitly" in by_rule(evaluate("hostname SW1\n"), "SEC-005")[0].description

    def test_telnet_on_vty(self):
        findings = evaluate("line vty 0 4\n transport input telnet ssh\n")
        assert len(by_rule(findings, "SEC-008")) == 1
        assert by_rule(evaluate("line vty 0 4\n transport input ssh\n"), "SEC-008") == []

    def test_access_port_hardening(self):
        findings = evaluate(
            "interface Gi0/1\n switchport mode access\n"
            "interface Gi0/2\n switchport mode access\n switchport port-security\n spanning-tree bpduguard enable\n"
            "interface Gi0/3\n switchport mode access\n shutdown\n"
        )
        assert [f.details["interface"] for f in by_rule(findings, "SEC-009")] == ["Gi0/1"]
        assert [f.details["interface"] for f in by_rule(findings, "SEC-010")] == ["Gi0/1"]

    def test_global_bpdu_guard_covers_portfast_ports(self):
        findings = evaluate(
            "spanning-tree portfast bpduguard default\n"
            "interface Gi0/1\n switchport mode access\n spanning-tree portfast\n"
            "interface Gi0/2\n switchport mode access\n"
        )
        assert [f.details["interface"] for f in by_rule(findings, "SEC-010")] == ["Gi0/2"]


class TestConflictRules:
    """Internal consistency checks."""

    def test_undeclared_vlan(self):
        findings = evaluate("interface Gi0/1\n switchport access vlan 50\n")
        conflicts = [f for f in findings if f.type == CONFLICT]
        assert len(conflicts) == 1
        assert conflicts[0].severity == "High"
        assert conflicts[0].details["interface"] == "Gi0/1"
        assert conflicts[0].details["vlanId"] == 50

    def test_declared_vlan_is_fine(self):
        findings = evaluate("vlan 50\n name X\ninterface Gi0/1\n switchport access vlan 50\n")
        assert [f for f in findings if f.type == CONFLICT] == []

    def test_default_vlan_needs_no_declaration(self):
        assert by_rule(evaluate("interface Gi0/1\n switchport access vlan 1\n"), "CON-001") == []

    def test_junos_vlan_name_reference(self):
        findings = evaluate(
            "set interfaces ge-0/0/1 unit 0 family ethernet-switching vlan members GHOST\n", "junos"
        )
        assert by_rule(findings, "CON-001")[0].details["vlanName"] == "GHOST"

    def test_svi_for_undeclared_vlan(self):
        findings = evaluate("interface Vlan20\n ip address 10.0.20.1 255.255.255.0\n")
        conflicts = [f for f in findings if f.type == CONFLICT]
        assert len(conflicts) == 1
        assert conflicts[0].details == {"interface": "Vlan20", "vlanId": 20, "field": "svi_vlan"}

    def test_svi_for_declared_vlan(self):
        findings = evaluate("vlan 20\n name USERS\ninterface Vlan20\n ip address 10.0.20.1 255.255.255.0\n")
        assert by_rule(findings, "CON-001") == []

    def test_trunk_references(self):
        findings = by_rule(evaluate(
            "vlan 10\n name DATA\n"
            "interface Gi0/1\n switchport mode trunk\n"
            " switchport trunk native vlan 99\n switchport trunk allowed vlan 10,50-52\n"
        ), "CON-001")
        assert [f.details["field"] for f in findings] == ["native_vlan", "trunk_vlans"]
        assert findings[0].details["vlanId"] == 99
        assert findings[1].details["vlanIds"] == [50, 51, 52]
        assert "50-52" in findings[1].description

    def test_trunk_allowed_all_is_not_a_reference(self):
        findings = evaluate("interface Gi0/1\n switchport mode trunk\n switchport trunk allowed vlan all\n")
        assert by_rule(findings, "CON-001") == []

    def test_junos_trunk_members(self):
        findings = by_rule(evaluate(
            "set vlans USERS vlan-id 10\n"
            "set interfaces ge-0/0/1 unit 0 family ethernet-switching interface-mode trunk\n"
            "set interfaces ge-0/0/1 unit 0 family ethernet-switching vlan members [ USERS 30 GHOST ]\n",
            "junos"
        ), "CON-001")
        assert [f.details.get("vlanIds") or f.details.get("vlanName") for f in findings] == [[30], "GHOST"]

    def test_missing_port_channel(self):
        findings = evaluate("interface Gi0/24\n channel-group 2 mode active\n")
        assert by_rule(findings, "CON-002")[0].details == {"interface": "Gi0/24", "portChannelId": "2"}

    def test_duplicate_interface(self):
        findings = evaluate("interface Gi0/1\n description A\ninterface Gi0/1\n description B\n")
        assert by_rule(findings, "CON-003")[0].details == {"interface": "Gi0/1", "count": 2}

    def test_duplicate_ip(self):
        findings = evaluate(
            "interface Vlan10\n ip address 10.0.0.1 255.255.255.0\n"
            "interface Vlan20\n ip address 10.0.0.1 255.255.255.0\n"
        )
        assert by_rule(findings, "CON-004")[0].details["interfaces"] == ["Vlan10", "Vlan20"]

    def test_undefined_acl(self):
        findings = evaluate("interface Gi0/1\n ip access-group BLOCK in\n")
        assert by_rule(findings, "CON-005")[0].details["acl"] == "BLOCK"
        defined = evaluate("ip access-list extended BLOCK\n deny ip any any\ninterface Gi0/1\n ip access-group BLOCK in\n")
        assert by_rule(defined, "CON-005") == []


class TestBestPracticeRules:
    """Suggestions and best-practice deviations."""

    def test_missing_descriptions_aggregated(self):
        findings = by_rule(evaluate("interface Gi0/1\ninterface Gi0/2\n description ok\ninterface Gi0/3\n"), "BP-001")
        assert len(findings) == 1
        assert findings[0].type == BEST_PRACTICE
        assert findings[0].details["interfaces"] == ["Gi0/1", "Gi0/3"]

    def test_near_duplicate_vlan_names(self):
        findings = by_rule(evaluate("vlan 10\n name DATA\nvlan 20\n name data\nvlan 30\n name Voice\n"), "BP-003")
        assert len(findings) == 1
        assert findings[0].details["vlanIds"] == [10, 20]

    def test_vtp_mode(self):
        assert len(by_rule(evaluate("vtp mode server\n"), "BP-004")) == 1
        assert by_rule(evaluate("vtp mode transparent\n"), "BP-004") == []

    def test_banner_and_ntp(self):
        findings = evaluate("banner login ^CAuthorized only^C\nntp server 10.0.0.1\n")
        assert by_rule(findings, "BP-005") == []
        assert by_rule(findings, "BP-006") == []

    def test_neighbor_discovery(self):
        assert len(by_rule(evaluate("no cdp run\n"), "BP-007")) == 1
        assert by_rule(evaluate("no cdp run\nlldp run\n"), "BP-007") == []
        assert by_rule(evaluate("hostname SW1\n"), "BP-007") == []

    def test_unused_vlans(self):
        findings = by_rule(evaluate(
            "vlan 10\n name DATA\nvlan 20\n name VOICE\nvlan 30\n name SPARE\nvlan 40\n name MGMT\n"
            "interface Gi0/1\n switchport access vlan 10\n"
            "interface Gi0/2\n switchport mode trunk\n switchport trunk allowed vlan 20\n"
            "interface Vlan40\n ip address 10.0.40.1 255.255.255.0\n"
        ), "BP-008")
        assert len(findings) == 1
        assert findings[0].type == SUGGESTION
        assert findings[0].details == {"vlanId": 30, "name": "SPARE"}

    def test_unused_acls(self):
        findings = by_rule(evaluate(
            "ip access-list standard UNUSED\n permit 10.0.0.1\n"
            "ip access-list standard VTY\n permit 10.0.0.2\n"
            "access-list 10 permit 10.0.0.3\n"
            "snmp-server community Xy9RO RO 10\n"
            "line vty 0 4\n access-class VTY in\n"
        ), "BP-008")
        assert [f.details for f in findings] == [{"acl": "UNUSED"}]
        assert "never applied" in findings[0].description


class TestRuleEngine:
    """Evaluation mechanics."""

    def test_example_switch(self):
        text = "hostname SW1\ninterface Gi0/1\n switchport access vlan 10\nvlan 10\n name DATA\n"
        config = normalize(text)
        assert config.device_info.hostname == "SW1"
        assert len(config.interfaces) == 1
        assert [v.vlan_id for v in config.vlans_svis] == [10]

        findings = RuleEngine().evaluate(config)
        assert any(f.type == SECURITY_RISK and f.rule_id == "SEC-001" for f in findings)
        assert [f for f in findings if f.type == CONFLICT] == []

        with_vlan_20 = evaluate(text.replace(" switchport access vlan 10\n",
                                             " switchport access vlan 10\n switchport voice vlan 20\n"))
        assert len([f for f in with_vlan_20 if f.type == CONFLICT]) == 1

    def test_config_not_modified(self):
        config = normalize("hostname SW1\ninterface Gi0/1\n switchport access vlan 50\n")
        before = config.to_dict()
        RuleEngine().evaluate(config)
        assert config.to_dict() == before

    def test_failing_rule_is_isolated(self, caplog):
        def boom(config):
            raise KeyError("missing")
            yield  # pragma: no cover

        def ok(config):
            yield Issue("always", {"x": 1})

        engine = RuleEngine([
            Rule("T-1", "boom", "test", CONFLICT, "High", boom),
            Rule("T-2", "ok", "test", SECURITY_RISK, "Low", ok, "fix it"),
        ])
        with caplog.at_level(logging.ERROR, logger="netlens.rule_engine"):
            findings = engine.evaluate(CanonicalConfig(file_name="x.conf"))

        assert [f.rule_id for f in findings] == ["T-2"]
        assert findings[0].recommendation == "fix it"
        assert findings[0].devices_involved == ["x.conf"]
        assert "T-1" in caplog.text

    def test_category_filter(self):
        findings = RuleEngine().evaluate(normalize("hostname SW1\n"), categories=["conflict"])
        assert findings == []
        findings = RuleEngine().evaluate(normalize("hostname SW1\n"), categories=["security"])
        assert findings and all(f.category == "security" for f in findings)

    def test_catalog_order(self):
        findings = evaluate("hostname SW1\ninterface Gi0/1\n switchport access vlan 50\n")
        order = [r.rule_id for r in RULE_CATALOG]
        positions = [order.index(f.rule_id) for f in findings]
        assert positions == sorted(positions)


class TestFindingRanker:
    """Deduplication, ids and ordering."""

    def make(self, description, severity="Low", type=CONFLICT, devices=("SW1",), category="conflict", id=""):
        return Finding(type=type, severity=severity, description=description,
                       devices_involved=list(devices), category=category, id=id)

    def test_duplicates_dropped(self):
        findings = [
            self.make("a", "Low"),
            self.make("a", "High"),
            self.make("a", "Low", devices=("SW2",)),
            self.make("a", "Low", type=SECURITY_RISK),
        ]
        final = FindingRanker().finalize(findings)
        assert len(final) == 3
        # First occurrence wins
        assert [f.severity for f in final if f.devices_involved == ["SW1"] and f.type == CONFLICT] == ["Low"]

    def test_device_order_is_part_of_key(self):
        final = FindingRanker().finalize([self.make("a", devices=("A", "B")), self.make("a", devices=("B", "A"))])
        assert [f.devices_involved for f in final] == [["A", "B"], ["B", "A"]]

    def test_same_device_list_dropped(self):
        final = FindingRanker().finalize([self.make("a", devices=("A", "B")), self.make("a", devices=("A", "B"))])
        assert len(final) == 1

    def test_ids_assigned(self):
        final = FindingRanker().finalize([
            self.make("a", category="security"),
            self.make("b", category="conflict"),
            self.make("c", category="conflict", id="keep-me"),
        ])
        assert [f.id for f in final] == ["security_1", "conflict_2", "keep-me"]

    def test_colliding_id_reassigned(self):
        final = FindingRanker().finalize([
            self.make("a", id="dup"),
            self.make("b", id="dup"),
        ])
        assert final[0].id == "dup"
        assert final[1].id == "conflict_1"

    def test_counter_resets_per_call(self):
        ranker = FindingRanker()
        first = ranker.finalize([self.make("a")])
        second = ranker.finalize([self.make("b")])
        assert first[0].id == second[0].id == "conflict_1"

    def test_stable_severity_order(self):
        findings = [
            self.make("low-1", "Low"),
            self.make("info", "Info"),
            self.make("high-1", "High"),
            self.make("crit", "Critical"),
            self.make("low-2", "Low"),
            self.make("high-2", "High"),
            self.make("medium", "Medium"),
        ]
        final = FindingRanker().finalize(findings)
        assert [f.description for f in final] == ["crit", "high-1", "high-2", "medium", "low-1", "low-2", "info"]

    def test_finalize_is_idempotent(self):
        ranker = FindingRanker()
        once = ranker.finalize(evaluate("hostname SW1\ninterface Gi0/1\n switchport access vlan 50\n"))
        twice = ranker.finalize(once)
        assert [f.to_dict() for f in once] == [f.to_dict() for f in twice]

    def test_input_not_modified(self):
        findings = [self.make("a"), self.make("a")]
        FindingRanker().finalize(findings)
        assert [f.id for f in findings] == ["", ""]

    def test_summary(self):
        summary = FindingRanker().summarize([
            self.make("a", "High"), self.make("b", "High", type=SECURITY_RISK), self.make("c", "Info"),
        ])
        assert summary["total"] == 3
        assert summary["bySeverity"] == {"Critical": 0, "High": 2, "Medium": 0, "Low": 0, "Info": 1}
        assert summary["byType"] == {CONFLICT: 2, SECURITY_RISK: 1}


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
