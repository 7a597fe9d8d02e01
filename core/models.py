"""
NetLens Data Models
Core data structures shared by the parser, normalizer and rule engine.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple


FieldPath = Tuple[str, ...]

# Finding types
CONFLICT = "Conflict"
SECURITY_RISK = "SecurityRisk"
SUGGESTION = "Suggestion"
BEST_PRACTICE = "BestPractice"
FINDING_TYPES = (CONFLICT, SECURITY_RISK, SUGGESTION, BEST_PRACTICE)

# Severities, most severe first
SEVERITIES = ("Critical", "High", "Medium", "Low", "Info")


@dataclass(frozen=True)
class RawConfig:
    """A configuration file as handed over by the caller."""
    file_name: str
    vendor: str             # cisco | junos | arista
    text: str


@dataclass(frozen=True)
class LogicalLine:
    """One classified configuration statement."""
    text: str
    raw: str
    line_no: int
    depth: int = 0
    context: str = "global"     # global | interface | vlan | router | acl | ... | unclassified
    parents: Tuple[str, ...] = ()
    block_line: int = 0
    opens_block: bool = False


class ExtractedFields:
    """
    Ordered (field path -> value) pairs produced by a vendor grammar.

    Single-valued paths keep the first value seen. Multi-valued paths
    collect every value in order.
    """

    def __init__(self):
        self._values: Dict[FieldPath, Any] = {}
        self._multi: set = set()
        self.unparsed: List[LogicalLine] = []
        self.warnings: List[str] = []

    def add(self, path: FieldPath, value: Any, multi: bool = False, line_no: int = 0) -> bool:
        """Record a value. Returns False if a single-valued path was already set."""
        if multi:
            self._multi.add(path)
            self._values.setdefault(path, []).append(value)
            return True

        if path in self._values:
            existing = self._values[path]
            if existing != value:
                self.warnings.append(
                    f"line {line_no}: ignored '{value}' for {format_path(path)} "
                    f"(already set to '{existing}')"
                )
            return False

        self._values[path] = value
        return True

    def get(self, path: FieldPath, default=None):
        return self._values.get(path, default)

    def items(self) -> Iterator[Tuple[FieldPath, Any]]:
        """Yield every extracted pair, one per element for multi-valued paths."""
        for path, value in self._values.items():
            if path in self._multi:
                for item in value:
                    yield path, item
            else:
                yield path, value

    def section(self, root: str) -> Dict[str, Any]:
        """Fields directly under `root` (e.g. 'device' -> {'hostname': ...})."""
        result = {}
        for path, value in self._values.items():
            if len(path) == 2 and path[0] == root:
                result[path[1]] = value
        return result

    def entities(self, root: str) -> Dict[str, Dict[str, Any]]:
        """Keyed entities under `root`, in first-seen order."""
        result: Dict[str, Dict[str, Any]] = {}
        for path, value in self._values.items():
            if len(path) == 3 and path[0] == root:
                result.setdefault(path[1], {})[path[2]] = value
        return result

    def __len__(self):
        return len(self._values)


def format_path(path: FieldPath) -> str:
    """Human readable form of a field path: interfaces[Gi0/1].ip_address"""
    if len(path) == 3:
        return f"{path[0]}[{path[1]}].{path[2]}"
    return ".".join(path)


@dataclass
class DeviceInfo:
    hostname: Optional[str] = None
    os_version: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    uptime: Optional[str] = None


@dataclass
class Interface:
    name: str
    ip_address: Optional[str] = None
    subnet_mask: Optional[str] = None
    description: Optional[str] = None
    status: str = "unknown"             # up | down | unknown
    speed_duplex: Optional[str] = None
    port_channel_id: Optional[str] = None
    port_channel: Optional[str] = None  # resolved aggregate interface name
    switchport_mode: Optional[str] = None
    access_vlan: Optional[int] = None
    access_vlan_name: Optional[str] = None
    voice_vlan: Optional[int] = None
    native_vlan: Optional[int] = None
    trunk_vlans: List[int] = field(default_factory=list)
    trunk_vlan_names: List[str] = field(default_factory=list)
    svi_vlan: Optional[int] = None      # VLAN served when this is a routed VLAN interface
    port_security: Optional[bool] = None
    bpdu_guard: Optional[bool] = None
    portfast: Optional[bool] = None
    helper_addresses: List[str] = field(default_factory=list)
    access_groups: List[str] = field(default_factory=list)


@dataclass
class Vlan:
    vlan_id: int
    name: Optional[str] = None
    svi_interface: Optional[str] = None
    svi_ip_address: Optional[str] = None
    helper_addresses: List[str] = field(default_factory=list)
    network_range: Optional[str] = None


@dataclass
class StaticRoute:
    destination: str
    next_hop: str


@dataclass
class RoutingProtocol:
    protocol_type: str
    process_id: Optional[str] = None
    networks: List[str] = field(default_factory=list)
    static_routes: List[StaticRoute] = field(default_factory=list)
    default_gateway: Optional[str] = None


@dataclass
class SnmpConfig:
    community: str
    access: Optional[str] = None    # RO | RW
    acl: Optional[str] = None
    version: Optional[str] = None


@dataclass
class Acl:
    name: str
    acl_type: Optional[str] = None
    entries: List[str] = field(default_factory=list)


@dataclass
class SecurityFeatures:
    password_encryption_enabled: bool = False
    aaa_configured: bool = False
    ssh_configured: bool = False
    snmp_configs: List[SnmpConfig] = field(default_factory=list)
    acls: List[Acl] = field(default_factory=list)
    http_server_disabled: Optional[bool] = None    # None = no HTTP line seen
    vty_transport: List[str] = field(default_factory=list)
    vty_access_classes: List[str] = field(default_factory=list)
    bpdu_guard_default: Optional[bool] = None


@dataclass
class OtherServices:
    ntp_servers: List[str] = field(default_factory=list)
    dns_servers: List[str] = field(default_factory=list)
    vtp_mode: Optional[str] = None
    cdp_enabled: Optional[bool] = None
    lldp_enabled: Optional[bool] = None
    banners: List[str] = field(default_factory=list)


@dataclass
class CanonicalConfig:
    """Vendor-neutral representation of one device configuration."""
    file_name: str = ""
    vendor: str = ""
    device_info: DeviceInfo = field(default_factory=DeviceInfo)
    interfaces: List[Interface] = field(default_factory=list)
    vlans_svis: List[Vlan] = field(default_factory=list)
    routing_protocols: List[RoutingProtocol] = field(default_factory=list)
    security_features: SecurityFeatures = field(default_factory=SecurityFeatures)
    other_services: OtherServices = field(default_factory=OtherServices)
    warnings: List[str] = field(default_factory=list)

    @property
    def device_label(self) -> str:
        """Identifier used in findings: hostname, falling back to the file name."""
        return self.device_info.hostname or self.file_name or "unknown-device"

    def find_interface(self, name: str) -> Optional[Interface]:
        for iface in self.interfaces:
            if iface.name == name:
                return iface
        return None

    def vlan_ids(self) -> set:
        return {v.vlan_id for v in self.vlans_svis}

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Finding:
    """A single detected issue."""
    type: str                   # Conflict | SecurityRisk | Suggestion | BestPractice
    severity: str               # Critical | High | Medium | Low | Info
    description: str
    devices_involved: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    recommendation: str = ""
    rule_id: str = ""
    category: str = ""
    id: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "description": self.description,
            "devicesInvolved": list(self.devices_involved),
            "details": self.details,
            "recommendation": self.recommendation,
            "ruleId": self.rule_id,
            "category": self.category,
        }


@dataclass
class Issue:
    """What a rule reports; the engine turns it into a Finding."""
    description: str
    details: Dict[str, Any] = field(default_factory=dict)
    recommendation: str = ""


@dataclass(frozen=True)
class Rule:
    """Catalog entry. Type and severity are fixed per rule."""
    rule_id: str
    title: str
    category: str           # security | conflict | best_practice
    finding_type: str
    severity: str
    check: Callable[["CanonicalConfig"], Iterable[Issue]]
    recommendation: str = ""


@dataclass
class VendorInfo:
    """Result of vendor detection."""
    vendor_name: str        # registered grammar name or "unknown"
    confidence: float       # 0.0 - 1.0
    detection_method: str   # "explicit" | "signature" | "none"
    matched_patterns: list = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Outcome of one pipeline invocation, successful or not."""
    file_name: str
    vendor: str
    config: Optional[CanonicalConfig] = None
    findings: List[Finding] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None    # InputError | SchemaViolation | Timeout

    @property
    def warnings(self) -> List[str]:
        return self.config.warnings if self.config else []

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        if self.warnings:
            return "warnings"
        return "ok"

    def to_dict(self) -> dict:
        return {
            "fileName": self.file_name,
            "vendor": self.vendor,
            "status": self.status,
            "error": self.error,
            "errorKind": self.error_kind,
            "config": self.config.to_dict() if self.config else None,
            "warnings": list(self.warnings),
            "findings": [f.to_dict() for f in self.findings],
        }
