"""
Vendor Grammar base
Declarative line-pattern rules shared by every vendor dialect.
"""

import re
from typing import Any, Callable, List, Optional, Tuple, Union

from core.models import ExtractedFields, FieldPath, LogicalLine  # pyre-ignore


FieldValue = Union[int, str, Callable[[Any], Any]]
Extraction = Tuple[FieldPath, Any, bool]

_GROUP_REF = re.compile(r"^\{(\d+)\}$")


class GrammarRule:
    """
    One ordered extraction rule.

    `fields` maps a target path template to a value source:
      - target: dotted path; '*' is the current block key, '{n}' is regex
        group n, a trailing '[]' marks a multi-valued field.
      - value: int (regex group), str (literal), or callable(match).
    """

    def __init__(self, pattern: str, fields: List[Tuple[str, FieldValue]],
                 context: Optional[Union[str, Tuple[str, ...]]] = None,
                 flags: int = re.IGNORECASE):
        self.pattern = pattern
        self.regex = re.compile(pattern, flags)
        if isinstance(context, str):
            context = (context,)
        self.context = context
        self.fields = [self._parse_target(target) + (value,) for target, value in fields]

    @staticmethod
    def _parse_target(target: str) -> Tuple[Tuple[str, ...], bool]:
        multi = target.endswith("[]")
        if multi:
            target = target[:-2]
        return tuple(target.split(".")), multi

    def applies_to(self, context: str) -> bool:
        return self.context is None or context in self.context

    def emit(self, match, key: Optional[str]) -> List[Extraction]:
        """Build (path, value, multi) triples for a successful match."""
        results: List[Extraction] = []
        for segments, multi, source in self.fields:
            path = []
            for segment in segments:
                if segment == "*":
                    if key is None:
                        return []
                    path.append(key)
                    continue
                ref = _GROUP_REF.match(segment)
                if ref:
                    group = match.group(int(ref.group(1)))
                    if group is None:
                        return []
                    path.append(unquote(group))
                    continue
                path.append(segment)

            if callable(source):
                value = source(match)
            elif isinstance(source, int):
                value = match.group(source)
            else:
                value = source
            if value is None:
                continue

            if multi and isinstance(value, list):
                results.extend((tuple(path), item, True) for item in value)
            else:
                results.append((tuple(path), value, multi))
        return results

    def __repr__(self):
        return f"GrammarRule({self.pattern!r})"


def unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


class VendorGrammar:
    """
    Capability set every vendor dialect implements:
    match_block_start, match_block_end and extract_field, plus the
    tokenizer hooks for comments and continuations.

    Grammar instances are immutable after construction and shared
    between concurrent pipeline runs.
    """

    name = ""
    display_name = ""

    # Indentation closes blocks (IOS style) rather than explicit braces
    INDENT_SCOPED = True
    # Whether unmatched block header lines count as unparsed
    HEADERS_CARRY_DATA = True

    COMMENT_PATTERNS: List[str] = []
    BLOCK_END_PATTERNS: List[str] = []

    # Content signatures for vendor detection
    SIGNATURES: List[str] = []
    SIGNATURE_WEIGHT = 1.0

    def __init__(self):
        self._comment_res = [re.compile(p, re.IGNORECASE) for p in self.COMMENT_PATTERNS]
        self._end_res = [re.compile(p, re.IGNORECASE) for p in self.BLOCK_END_PATTERNS]
        self.signatures = tuple(re.compile(p, re.IGNORECASE) for p in self.SIGNATURES)
        self.rules = tuple(self.build_rules())

    def build_rules(self) -> List[GrammarRule]:
        """Ordered extraction rules. Earlier rules take priority."""
        raise NotImplementedError

    # --- Tokenizer hooks ---

    def is_comment(self, stripped: str) -> bool:
        return any(r.match(stripped) for r in self._comment_res)

    def is_continued(self, buffer: str) -> bool:
        return buffer.rstrip().endswith("\\")

    def join_continuation(self, buffer: str, physical: str) -> str:
        stripped = buffer.rstrip()
        if stripped.endswith("\\"):
            return stripped[:-1].rstrip() + " " + physical.strip()
        return buffer + "\n" + physical

    def clean(self, stripped: str) -> str:
        """Statement text for a physical line (dialect punctuation removed)."""
        return stripped

    def classify(self, statement: str) -> str:
        """Block context of a top-level statement that opens no block."""
        return "global"

    def match_block_start(self, stripped: str, parents: Tuple[str, ...]) -> Optional[str]:
        """Return the block context tag if this line opens a block."""
        raise NotImplementedError

    def match_block_end(self, stripped: str) -> bool:
        return any(r.match(stripped) for r in self._end_res)

    # --- Extraction ---

    def statement(self, line: LogicalLine) -> str:
        """Text the extraction rules are matched against."""
        return line.text

    def block_key(self, line: LogicalLine) -> Optional[str]:
        """Key of the entity the enclosing block describes, if any."""
        return None

    def extract_field(self, line: LogicalLine) -> List[Extraction]:
        """Apply the first matching rule to a line."""
        text = self.statement(line)
        for rule in self.rules:
            if not rule.applies_to(line.context):
                continue
            match = rule.regex.match(text)
            if not match:
                continue
            extracted = rule.emit(match, self.block_key(line))
            if extracted:
                return extracted
        return []

    def extract(self, lines: List[LogicalLine]) -> ExtractedFields:
        """Run the rules over tokenized lines; unmatched lines are kept aside."""
        extracted = ExtractedFields()
        for line in lines:
            pairs = self.extract_field(line)
            if not pairs:
                if line.opens_block and not self.HEADERS_CARRY_DATA:
                    continue
                extracted.unparsed.append(line)
                continue
            for path, value, multi in pairs:
                extracted.add(path, value, multi=multi, line_no=line.line_no)
        return extracted

    # --- Cross-reference hooks used by the normalizer ---

    def is_aggregate_of(self, interface_name: str, channel_id: str) -> bool:
        """True if `interface_name` is the aggregate interface for `channel_id`."""
        return interface_name == channel_id

    def svi_vlan_id(self, interface_name: str) -> Optional[int]:
        """VLAN id served by a routed VLAN interface, or None."""
        return None

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"
