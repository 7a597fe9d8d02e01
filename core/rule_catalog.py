"""
Module 5a — Rule Catalog
Detection rules for security risks, internal conflicts and best-practice
deviations. Each rule is a pure function of a CanonicalConfig.
"""

import re
from collections import Counter, OrderedDict
from typing import Callable, List, Tuple

from core.models import (  # pyre-ignore
    BEST_PRACTICE, CONFLICT, FINDING_TYPES, SECURITY_RISK, SEVERITIES,
    SUGGESTION, CanonicalConfig, Issue, Rule,
)


SECURITY = "security"
CONFLICTS = "conflict"
BEST_PRACTICES = "best_practice"

WELL_KNOWN_COMMUNITIES = {
    "public", "private", "cisco", "community", "snmp", "snmpd", "admin",
    "default", "secret", "manager", "monitor", "router", "switch", "read", "write",
}

# VLANs that exist on IOS-style switches without being declared
IMPLICIT_VLANS = {1}

_CATALOG: List[Rule] = []


def rule(rule_id: str, title: str, category: str, finding_type: str, severity: str,
         recommendation: str = "") -> Callable:
    """Register a check function in the catalog, in declaration order."""
    if finding_type not in FINDING_TYPES:
        raise ValueError(f"{rule_id}: invalid finding type {finding_type}")
    if severity not in SEVERITIES:
        raise ValueError(f"{rule_id}: invalid severity {severity}")

    def decorator(check):
        if any(r.rule_id == rule_id for r in _CATALOG):
            raise ValueError(f"Duplicate rule_id: {rule_id}")
        _CATALOG.append(Rule(
            rule_id=rule_id,
            title=title,
            category=category,
            finding_type=finding_type,
            severity=severity,
            check=check,
            recommendation=recommendation,
        ))
        return check
    return decorator


def _active_access_ports(config: CanonicalConfig):
    for iface in config.interfaces:
        if iface.switchport_mode == "access" and iface.status != "down":
            yield iface


def _vlan_ranges(ids: List[int]) -> str:
    """Compact form of a VLAN id list: [10, 11, 12, 20] -> "10-12,20"."""
    ranges = []
    for vlan_id in sorted(set(ids)):
        if ranges and vlan_id == ranges[-1][1] + 1:
            ranges[-1][1] = vlan_id
        else:
            ranges.append([vlan_id, vlan_id])
    return ",".join(str(lo) if lo == hi else f"{lo}-{hi}" for lo, hi in ranges)


# --- Security ---

@rule("SEC-001", "Password encryption disabled", SECURITY, SECURITY_RISK, "High",
      "Enable 'service password-encryption' (or the platform equivalent) so stored passwords are not in clear text.")
def password_encryption(config):
    if not config.security_features.password_encryption_enabled:
        yield Issue("Password encryption is not enabled", {"passwordEncryptionEnabled": False})


@rule("SEC-002", "Well-known SNMP community", SECURITY, SECURITY_RISK, "High",
      "Replace default SNMP community strings with unique values, or move to SNMPv3.")
def default_snmp_community(config):
    for snmp in config.security_features.snmp_configs:
        if snmp.community.lower() in WELL_KNOWN_COMMUNITIES:
            yield Issue(
                f"SNMP community '{snmp.community}' is a well-known default",
                {"community": snmp.community, "access": snmp.access},
            )


@rule("SEC-003", "SNMP write community", SECURITY, SECURITY_RISK, "Medium",
      "Remove read-write SNMP communities unless SNMP-based provisioning is required.")
def snmp_write_access(config):
    for snmp in config.security_features.snmp_configs:
        if snmp.access == "RW":
            yield Issue(
                f"SNMP community '{snmp.community}' grants write access",
                {"community": snmp.community, "access": snmp.access},
            )


@rule("SEC-004", "SNMP community without ACL", SECURITY, SECURITY_RISK, "Low",
      "Restrict SNMP communities to management hosts with an access list.")
def snmp_without_acl(config):
    for snmp in config.security_features.snmp_configs:
        if snmp.version != "v3" and not snmp.acl:
            yield Issue(
                f"SNMP community '{snmp.community}' is not restricted by an access list",
                {"community": snmp.community},
            )


@rule("SEC-005", "HTTP server not disabled", SECURITY, SECURITY_RISK, "Medium",
      "Disable the plain-text HTTP management server ('no ip http server').")
def http_server(config):
    disabled = config.security_features.http_server_disabled
    if disabled is False:
        yield Issue("HTTP server is enabled", {"httpServerDisabled": False})
    elif disabled is None:
        yield Issue("HTTP server is not explicitly disabled", {"httpServerDisabled": None})


@rule("SEC-006", "AAA not configured", SECURITY, SECURITY_RISK, "Medium",
      "Enable AAA ('aaa new-model') with a central authentication server and local fallback.")
def aaa_missing(config):
    if not config.security_features.aaa_configured:
        yield Issue("AAA is not configured", {"aaaConfigured": False})


@rule("SEC-007", "SSH not configured", SECURITY, SECURITY_RISK, "Medium",
      "Configure SSH version 2 for remote management.")
def ssh_missing(config):
    if not config.security_features.ssh_configured:
        yield Issue("SSH is not configured", {"sshConfigured": False})


@rule("SEC-008", "Telnet allowed", SECURITY, SECURITY_RISK, "High",
      "Restrict management lines to SSH ('transport input ssh').")
def telnet_allowed(config):
    transports = config.security_features.vty_transport
    allowed = [t for t in transports if t in ("telnet", "all")]
    if allowed:
        yield Issue("Telnet is allowed for remote management", {"transportInput": transports})


@rule("SEC-009", "Access port without port-security", SECURITY, SECURITY_RISK, "Medium",
      "Enable port-security on access ports to limit learned MAC addresses.")
def access_port_security(config):
    for iface in _active_access_ports(config):
        if iface.port_security is not True:
            yield Issue(f"Access port {iface.name} has no port-security", {"interface": iface.name})


@rule("SEC-010", "Access port without BPDU guard", SECURITY, SECURITY_RISK, "Medium",
      "Enable BPDU guard on edge ports, per interface or globally for portfast ports.")
def access_port_bpdu_guard(config):
    default = config.security_features.bpdu_guard_default is True
    for iface in _active_access_ports(config):
        if iface.bpdu_guard is True:
            continue
        if default and iface.portfast and iface.bpdu_guard is not False:
            continue
        yield Issue(f"Access port {iface.name} has no BPDU guard", {"interface": iface.name})


# --- Internal conflicts ---

@rule("CON-001", "Undeclared VLAN reference", CONFLICTS, CONFLICT, "High",
      "Declare the VLAN or correct the interface VLAN assignment.")
def undeclared_vlan(config):
    declared = config.vlan_ids() | IMPLICIT_VLANS
    names = {v.name for v in config.vlans_svis if v.name}
    for iface in config.interfaces:
        references = (
            ("access_vlan", iface.access_vlan),
            ("voice_vlan", iface.voice_vlan),
            ("native_vlan", iface.native_vlan),
            ("svi_vlan", iface.svi_vlan),
        )
        for field_name, vlan_id in references:
            if vlan_id is not None and vlan_id not in declared:
                yield Issue(
                    f"Interface {iface.name} references undeclared VLAN {vlan_id}",
                    {"interface": iface.name, "vlanId": vlan_id, "field": field_name},
                )
        if iface.access_vlan is None and iface.access_vlan_name and iface.access_vlan_name not in names:
            yield Issue(
                f"Interface {iface.name} references undeclared VLAN '{iface.access_vlan_name}'",
                {"interface": iface.name, "vlanName": iface.access_vlan_name, "field": "access_vlan"},
            )

        missing = [v for v in iface.trunk_vlans if v not in declared]
        if missing:
            yield Issue(
                f"Interface {iface.name} trunk allows undeclared VLANs {_vlan_ranges(missing)}",
                {"interface": iface.name, "vlanIds": missing, "field": "trunk_vlans"},
            )
        for name in iface.trunk_vlan_names:
            if name not in names:
                yield Issue(
                    f"Interface {iface.name} trunk allows undeclared VLAN '{name}'",
                    {"interface": iface.name, "vlanName": name, "field": "trunk_vlans"},
                )


@rule("CON-002", "Port-channel member without aggregate", CONFLICTS, CONFLICT, "High",
      "Create the port-channel interface or remove the channel-group from the member.")
def missing_port_channel(config):
    for iface in config.interfaces:
        if iface.port_channel_id is not None and iface.port_channel is None:
            yield Issue(
                f"Interface {iface.name} is a member of undeclared port-channel {iface.port_channel_id}",
                {"interface": iface.name, "portChannelId": iface.port_channel_id},
            )


@rule("CON-003", "Duplicate interface", CONFLICTS, CONFLICT, "Medium",
      "Merge the duplicate interface stanzas into one.")
def duplicate_interfaces(config):
    counts = Counter(iface.name for iface in config.interfaces)
    for name, count in counts.items():
        if count > 1:
            yield Issue(f"Interface {name} is declared {count} times", {"interface": name, "count": count})


@rule("CON-004", "Duplicate IP address", CONFLICTS, CONFLICT, "High",
      "Assign a unique address to each interface.")
def duplicate_ip(config):
    by_ip = OrderedDict()
    for iface in config.interfaces:
        if iface.ip_address and re.match(r"^\d{1,3}(\.\d{1,3}){3}$", iface.ip_address):
            by_ip.setdefault(iface.ip_address, []).append(iface.name)
    for ip, names in by_ip.items():
        if len(names) > 1:
            yield Issue(
                f"IP address {ip} is assigned to multiple interfaces",
                {"ipAddress": ip, "interfaces": names},
            )


@rule("CON-005", "Undefined access list", CONFLICTS, CONFLICT, "Medium",
      "Define the access list or remove the reference from the interface.")
def undefined_acl(config):
    defined = {acl.name for acl in config.security_features.acls}
    for iface in config.interfaces:
        for acl_name in iface.access_groups:
            if acl_name not in defined:
                yield Issue(
                    f"Interface {iface.name} applies undefined access list {acl_name}",
                    {"interface": iface.name, "acl": acl_name},
                )


# --- Best practice / suggestions ---

@rule("BP-001", "Interfaces without description", BEST_PRACTICES, BEST_PRACTICE, "Low",
      "Describe every interface with its peer or purpose.")
def interface_descriptions(config):
    missing = [i.name for i in config.interfaces if not (i.description or "").strip()]
    if missing:
        yield Issue(f"{len(missing)} interface(s) have no description", {"interfaces": missing})


@rule("BP-002", "VLANs without name", BEST_PRACTICES, BEST_PRACTICE, "Low",
      "Name every VLAN after its purpose.")
def vlan_names(config):
    missing = [v.vlan_id for v in config.vlans_svis if not (v.name or "").strip()]
    if missing:
        yield Issue(f"{len(missing)} VLAN(s) have no name", {"vlanIds": missing})


@rule("BP-003", "Inconsistent VLAN naming", BEST_PRACTICES, SUGGESTION, "Low",
      "Use one naming convention for VLANs.")
def inconsistent_vlan_names(config):
    groups = OrderedDict()
    for vlan in config.vlans_svis:
        if vlan.name:
            key = re.sub(r"[\s_\-]", "", vlan.name).casefold()
            groups.setdefault(key, []).append(vlan)
    for vlans in groups.values():
        spellings = list(OrderedDict.fromkeys(v.name for v in vlans))
        if len(spellings) > 1:
            yield Issue(
                f"VLAN names {', '.join(spellings)} differ only in case or separators",
                {"names": spellings, "vlanIds": [v.vlan_id for v in vlans]},
            )


@rule("BP-004", "VTP mode", BEST_PRACTICES, SUGGESTION, "Low",
      "Set 'vtp mode transparent' or 'vtp mode off' to avoid VLAN database propagation.")
def vtp_mode(config):
    mode = config.other_services.vtp_mode
    if mode is not None and mode not in ("transparent", "off"):
        yield Issue(f"VTP mode is '{mode}'", {"vtpMode": mode})


@rule("BP-005", "No NTP servers", BEST_PRACTICES, BEST_PRACTICE, "Low",
      "Configure at least two NTP servers for consistent log timestamps.")
def ntp_servers(config):
    if not config.other_services.ntp_servers:
        yield Issue("No NTP servers configured", {"ntpServers": []})


@rule("BP-006", "No login banner", BEST_PRACTICES, BEST_PRACTICE, "Info",
      "Configure a login banner with an authorized-use notice.")
def login_banner(config):
    banners = config.other_services.banners
    if not any(b in ("login", "motd") for b in banners):
        yield Issue("No login banner configured", {"banners": banners})


@rule("BP-007", "Neighbor discovery disabled", BEST_PRACTICES, SUGGESTION, "Info",
      "Enable LLDP (or CDP) on infrastructure links to simplify troubleshooting.")
def neighbor_discovery(config):
    services = config.other_services
    if services.cdp_enabled is False and services.lldp_enabled is not True:
        yield Issue(
            "No neighbor discovery protocol is enabled",
            {"cdpEnabled": services.cdp_enabled, "lldpEnabled": services.lldp_enabled},
        )


@rule("BP-008", "Unused configuration", BEST_PRACTICES, SUGGESTION, "Low",
      "Remove VLANs and access lists that nothing references, or apply them where intended.")
def unused_configuration(config):
    used_vlans = set()
    for iface in config.interfaces:
        used_vlans.update(v for v in (iface.access_vlan, iface.voice_vlan, iface.native_vlan, iface.svi_vlan)
                          if v is not None)
        used_vlans.update(iface.trunk_vlans)
    for vlan in config.vlans_svis:
        if vlan.vlan_id in IMPLICIT_VLANS or vlan.vlan_id in used_vlans or vlan.svi_interface:
            continue
        yield Issue(
            f"VLAN {vlan.vlan_id} is declared but not used by any interface",
            {"vlanId": vlan.vlan_id, "name": vlan.name},
        )

    security = config.security_features
    applied = {name for iface in config.interfaces for name in iface.access_groups}
    applied.update(snmp.acl for snmp in security.snmp_configs if snmp.acl)
    applied.update(security.vty_access_classes)
    for acl in security.acls:
        if acl.name not in applied:
            yield Issue(f"Access list {acl.name} is defined but never applied", {"acl": acl.name})


RULE_CATALOG: Tuple[Rule, ...] = tuple(_CATALOG)
