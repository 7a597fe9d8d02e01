"""
Module 4 — Normalizer
Maps vendor-extracted fields into the canonical schema: type coercion,
default application and two-pass cross-reference linking.
"""

import ipaddress
import logging
import re
from typing import Any, Dict, List, Optional

from core.errors import SchemaViolation  # pyre-ignore
from core.models import (  # pyre-ignore
    Acl, CanonicalConfig, DeviceInfo, ExtractedFields, Interface,
    OtherServices, RoutingProtocol, SecurityFeatures, SnmpConfig,
    StaticRoute, Vlan,
)
from core.parser_engine import get_grammar  # pyre-ignore


logger = logging.getLogger("netlens.normalizer")

VLAN_MIN = 1
VLAN_MAX = 4094

_VLAN_LIST = re.compile(r"^\d+(?:-\d+)?(?:,\d+(?:-\d+)?)*$")

# Trunk list keywords that name no specific VLAN
TRUNK_KEYWORDS = {"all", "none"}


class Normalizer:
    """Normalizes extracted fields into a CanonicalConfig."""

    def normalize(self, extracted: ExtractedFields, vendor, file_name: str = "") -> CanonicalConfig:
        """
        Build the canonical configuration for one device.

        Declarations are collected first and linked afterwards, so
        cross-references do not depend on the order of the source text.

        Args:
            extracted: Field pairs produced by a vendor grammar.
            vendor: Vendor name or grammar instance.
            file_name: Name of the originating file.

        Returns:
            CanonicalConfig with non-fatal anomalies in `warnings`.

        Raises:
            SchemaViolation: If a VLAN id is not numeric.
        """
        grammar = get_grammar(vendor) if isinstance(vendor, str) else vendor
        warnings: List[str] = [
            f"line {line.line_no}: unparsed '{line.text}'" for line in extracted.unparsed
        ]
        warnings.extend(extracted.warnings)

        config = CanonicalConfig(file_name=file_name, vendor=grammar.name)

        # Pass 1: collect declarations
        config.device_info = DeviceInfo(**{
            k: v for k, v in extracted.section("device").items()
            if k in DeviceInfo.__dataclass_fields__
        })
        config.interfaces = [
            self._interface(key, data, warnings)
            for key, data in extracted.entities("interfaces").items()
        ]
        config.vlans_svis = self._vlans(extracted.entities("vlans"), warnings)
        config.routing_protocols = self._routing(extracted.entities("routing"))
        config.security_features = self._security(
            extracted.section("security"), extracted.entities("acls"), warnings
        )
        config.other_services = self._services(extracted.section("services"), warnings)

        # Pass 2: link references
        self._link_port_channels(config, grammar, warnings)
        self._link_svis(config, grammar, warnings)
        self._resolve_vlan_names(config, warnings)

        config.warnings = warnings
        logger.debug(
            f"{file_name}: {len(config.interfaces)} interfaces, "
            f"{len(config.vlans_svis)} VLANs, {len(warnings)} warnings"
        )
        return config

    # --- Pass 1 ---

    def _interface(self, key: str, data: Dict[str, Any], warnings: List[str]) -> Interface:
        name = data.get("name") or key.split("@")[0]
        where = f"interface {name}"
        iface = Interface(
            name=name,
            ip_address=data.get("ip_address"),
            subnet_mask=data.get("subnet_mask"),
            description=data.get("description"),
            status=data.get("status", "unknown"),
            speed_duplex=self._speed_duplex(data.get("speed"), data.get("duplex")),
            port_channel_id=data.get("port_channel_id"),
            switchport_mode=_lower(data.get("switchport_mode")),
            access_vlan=self._vlan_ref(data.get("access_vlan"), where, warnings),
            access_vlan_name=data.get("access_vlan_name"),
            voice_vlan=self._vlan_ref(data.get("voice_vlan"), where, warnings),
            native_vlan=self._vlan_ref(data.get("native_vlan"), where, warnings),
            port_security=self._bool(data.get("port_security"), where, warnings),
            bpdu_guard=self._bool(data.get("bpdu_guard"), where, warnings),
            portfast=self._bool(data.get("portfast"), where, warnings),
            helper_addresses=_ordered_set(data.get("helper_addresses", [])),
            access_groups=_ordered_set(data.get("access_groups", [])),
        )

        trunk_ids: List[int] = []
        for allowed in data.get("trunk_allowed", []):
            if allowed.lower() not in TRUNK_KEYWORDS:
                trunk_ids.extend(self._vlan_ids(allowed, warnings, where))

        # JunOS: one member on a non-trunk port is the access VLAN, anything else is trunked
        members = [m for m in data.get("vlan_members", []) if m.lower() not in TRUNK_KEYWORDS]
        single = len(members) == 1 and iface.switchport_mode != "trunk" and \
            iface.access_vlan is None and iface.access_vlan_name is None
        if single and members[0].isdigit():
            iface.access_vlan = self._vlan_ref(members[0], where, warnings)
        elif single and not _VLAN_LIST.match(members[0]):
            iface.access_vlan_name = members[0]
        else:
            for member in members:
                if _VLAN_LIST.match(member):
                    trunk_ids.extend(self._vlan_ids(member, warnings, where))
                else:
                    iface.trunk_vlan_names.append(member)

        iface.trunk_vlans = _ordered_set(trunk_ids)
        iface.trunk_vlan_names = _ordered_set(iface.trunk_vlan_names)
        return iface

    def _vlans(self, entities: Dict[str, Dict[str, Any]], warnings: List[str]) -> List[Vlan]:
        vlans: List[Vlan] = []
        seen = set()
        for key, data in entities.items():
            raw_id = data.get("vlan_id")
            if raw_id is None:
                warnings.append(f"VLAN '{key}' has no VLAN id; skipped")
                continue
            for vlan_id in self._vlan_ids(raw_id, warnings):
                if vlan_id in seen:
                    warnings.append(f"VLAN id {vlan_id} declared more than once; kept the first")
                    continue
                seen.add(vlan_id)
                vlans.append(Vlan(
                    vlan_id=vlan_id,
                    name=data.get("name"),
                    svi_interface=data.get("svi_interface"),
                ))
        return vlans

    def _routing(self, entities: Dict[str, Dict[str, Any]]) -> List[RoutingProtocol]:
        protocols = []
        for key, data in entities.items():
            routes = [StaticRoute(destination=d, next_hop=nh) for d, nh in data.get("static_routes", [])]
            gateway = data.get("default_gateway")
            if gateway is None:
                gateway = next((r.next_hop for r in routes if r.destination == "0.0.0.0/0"), None)
            protocols.append(RoutingProtocol(
                protocol_type=data.get("protocol_type", key),
                process_id=data.get("process_id"),
                networks=list(data.get("networks", [])),
                static_routes=routes,
                default_gateway=gateway,
            ))
        return protocols

    def _security(self, data: Dict[str, Any], acls: Dict[str, Dict[str, Any]],
                  warnings: List[str]) -> SecurityFeatures:
        where = "security"
        return SecurityFeatures(
            password_encryption_enabled=self._bool(data.get("password_encryption_enabled"), where, warnings) is True,
            aaa_configured=self._bool(data.get("aaa_configured"), where, warnings) is True,
            ssh_configured=self._bool(data.get("ssh_configured"), where, warnings) is True,
            snmp_configs=self._snmp(data.get("snmp_configs", [])),
            acls=[
                Acl(name=acl.get("name", key), acl_type=acl.get("acl_type"), entries=list(acl.get("entries", [])))
                for key, acl in acls.items()
            ],
            http_server_disabled=self._bool(data.get("http_server_disabled"), where, warnings),
            vty_transport=_ordered_set(v.lower() for v in data.get("vty_transport", [])),
            vty_access_classes=_ordered_set(data.get("vty_access_classes", [])),
            bpdu_guard_default=self._bool(data.get("bpdu_guard_default"), where, warnings),
        )

    def _snmp(self, entries: List[tuple]) -> List[SnmpConfig]:
        """One SnmpConfig per community; later lines fill fields still unset."""
        by_community: Dict[str, SnmpConfig] = {}
        for community, access, acl, version in entries:
            snmp = by_community.get(community)
            if snmp is None:
                by_community[community] = SnmpConfig(community, access, acl, version)
                continue
            snmp.access = snmp.access or access
            snmp.acl = snmp.acl or acl
            snmp.version = snmp.version or version
        return list(by_community.values())

    def _services(self, data: Dict[str, Any], warnings: List[str]) -> OtherServices:
        where = "services"
        return OtherServices(
            ntp_servers=_ordered_set(data.get("ntp_servers", [])),
            dns_servers=_ordered_set(data.get("dns_servers", [])),
            vtp_mode=_lower(data.get("vtp_mode")),
            cdp_enabled=self._bool(data.get("cdp_enabled"), where, warnings),
            lldp_enabled=self._bool(data.get("lldp_enabled"), where, warnings),
            banners=_ordered_set(data.get("banners", [])),
        )

    # --- Pass 2 ---

    def _link_port_channels(self, config: CanonicalConfig, grammar, warnings: List[str]):
        for iface in config.interfaces:
            if iface.port_channel_id is None:
                continue
            parent = next(
                (other for other in config.interfaces
                 if other is not iface and grammar.is_aggregate_of(other.name, iface.port_channel_id)),
                None
            )
            if parent is None:
                warnings.append(
                    f"interface {iface.name}: port-channel {iface.port_channel_id} is not declared"
                )
            else:
                iface.port_channel = parent.name

    def _link_svis(self, config: CanonicalConfig, grammar, warnings: List[str]):
        declared = config.vlan_ids()
        for vlan in config.vlans_svis:
            svi = None
            if vlan.svi_interface:
                svi = config.find_interface(vlan.svi_interface)
                if svi is None:
                    warnings.append(
                        f"VLAN {vlan.vlan_id}: routed interface {vlan.svi_interface} is not declared"
                    )
            else:
                svi = next(
                    (i for i in config.interfaces if grammar.svi_vlan_id(i.name) == vlan.vlan_id),
                    None
                )
            if svi is None:
                continue

            vlan.svi_interface = svi.name
            vlan.svi_ip_address = svi.ip_address
            vlan.helper_addresses = list(svi.helper_addresses)
            vlan.network_range = self._network_range(svi, warnings)

        for iface in config.interfaces:
            linked = next((v.vlan_id for v in config.vlans_svis if v.svi_interface == iface.name), None)
            if linked is not None:
                iface.svi_vlan = linked
                continue
            vlan_id = grammar.svi_vlan_id(iface.name)
            if vlan_id is None:
                continue
            iface.svi_vlan = vlan_id
            if vlan_id not in declared:
                warnings.append(f"interface {iface.name}: VLAN {vlan_id} is not declared")

    def _resolve_vlan_names(self, config: CanonicalConfig, warnings: List[str]):
        by_name = {v.name: v.vlan_id for v in config.vlans_svis if v.name}
        for iface in config.interfaces:
            if iface.access_vlan is None and iface.access_vlan_name:
                if iface.access_vlan_name in by_name:
                    iface.access_vlan = by_name[iface.access_vlan_name]
                else:
                    warnings.append(
                        f"interface {iface.name}: VLAN '{iface.access_vlan_name}' is not declared"
                    )

            for name in iface.trunk_vlan_names:
                vlan_id = by_name.get(name)
                if vlan_id is None:
                    warnings.append(f"interface {iface.name}: VLAN '{name}' is not declared")
                elif vlan_id not in iface.trunk_vlans:
                    iface.trunk_vlans.append(vlan_id)

    # --- Coercion helpers ---

    def _vlan_ids(self, raw: str, warnings: List[str], where: str = "") -> List[int]:
        """
        Expand '10', '10,20' or '10-12' into integer VLAN ids.

        Ranges are clamped to the valid VLAN space before expansion and
        reversed bounds are swapped, each with a warning.
        """
        text = str(raw).strip()
        if not _VLAN_LIST.match(text):
            raise SchemaViolation(f"VLAN id '{raw}' is not numeric")
        prefix = f"{where}: " if where else ""
        ids = []
        for part in text.split(","):
            low_text, _, high_text = part.partition("-")
            low = _vlan_bound(low_text)
            high = _vlan_bound(high_text) if high_text else low
            if low > high:
                warnings.append(f"{prefix}VLAN range {part} is reversed; read as {high}-{low}")
                low, high = high, low

            first, last = max(low, VLAN_MIN), min(high, VLAN_MAX)
            if first > last:
                warnings.append(f"{prefix}VLAN id {part} out of range {VLAN_MIN}-{VLAN_MAX}; skipped")
                continue
            if (first, last) != (low, high):
                warnings.append(
                    f"{prefix}VLAN ids {part} partly out of range {VLAN_MIN}-{VLAN_MAX}; kept {first}-{last}"
                )
            ids.extend(range(first, last + 1))
        return ids

    def _vlan_ref(self, raw: Optional[str], where: str, warnings: List[str]) -> Optional[int]:
        if raw is None:
            return None
        if not str(raw).strip().isdigit():
            raise SchemaViolation(f"{where}: VLAN id '{raw}' is not numeric")
        vlan_id = _vlan_bound(str(raw).strip())
        if not VLAN_MIN <= vlan_id <= VLAN_MAX:
            warnings.append(f"{where}: VLAN id {str(raw).strip()} out of range {VLAN_MIN}-{VLAN_MAX}")
        return vlan_id

    def _bool(self, raw: Optional[str], where: str, warnings: List[str]) -> Optional[bool]:
        if raw is None:
            return None
        value = str(raw).lower()
        if value == "true":
            return True
        if value == "false":
            return False
        warnings.append(f"{where}: could not read '{raw}' as a flag; left unset")
        return None

    def _speed_duplex(self, speed: Optional[str], duplex: Optional[str]) -> Optional[str]:
        parts = [p for p in (speed, duplex) if p]
        return "/".join(parts) if parts else None

    def _network_range(self, iface: Interface, warnings: List[str]) -> Optional[str]:
        if not iface.ip_address or not iface.subnet_mask:
            return None
        try:
            return str(ipaddress.IPv4Interface(f"{iface.ip_address}/{iface.subnet_mask}").network)
        except ValueError:
            warnings.append(
                f"interface {iface.name}: invalid address {iface.ip_address} {iface.subnet_mask}"
            )
            return None


def _vlan_bound(text: str) -> int:
    # Anything longer than a VLAN id is out of range anyway
    digits = text.lstrip("0") or "0"
    return int(digits) if len(digits) <= 6 else VLAN_MAX + 1


def _ordered_set(values) -> List[str]:
    return list(dict.fromkeys(values))


def _lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value else value
