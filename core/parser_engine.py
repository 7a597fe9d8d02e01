"""
Module 3 — Parser Engine
Holds the vendor grammar registry and turns a RawConfig into extracted
(field path, value) pairs via the tokenizer and the selected grammar.
"""

import logging
from typing import Dict, List

from core.errors import InputError  # pyre-ignore
from core.models import ExtractedFields, LogicalLine, RawConfig  # pyre-ignore
from core.tokenizer import tokenize  # pyre-ignore
from grammars.arista_grammar import AristaGrammar  # pyre-ignore
from grammars.base import VendorGrammar  # pyre-ignore
from grammars.cisco_grammar import CiscoGrammar  # pyre-ignore
from grammars.junos_grammar import JunosGrammar  # pyre-ignore


logger = logging.getLogger("netlens.parser_engine")

# Built once; grammars are read-only afterwards
_GRAMMARS: Dict[str, VendorGrammar] = {}


def register_grammar(grammar: VendorGrammar) -> VendorGrammar:
    """Add a vendor dialect. The tokenizer and normalizer need no changes."""
    if not grammar.name:
        raise ValueError("grammar must define a name")
    _GRAMMARS[grammar.name.lower()] = grammar
    return grammar


def get_grammar(vendor: str) -> VendorGrammar:
    """
    Look up the grammar for a vendor name.

    Raises:
        InputError: If no grammar is registered for the vendor.
    """
    grammar = _GRAMMARS.get((vendor or "").lower().strip())
    if grammar is None:
        raise InputError(
            f"No grammar available for vendor '{vendor}'. "
            f"Supported vendors: {supported_vendors()}"
        )
    return grammar


def supported_vendors() -> List[str]:
    return list(_GRAMMARS.keys())


def all_grammars() -> List[VendorGrammar]:
    return list(_GRAMMARS.values())


for _grammar in (CiscoGrammar(), JunosGrammar(), AristaGrammar()):
    register_grammar(_grammar)


class ParserEngine:
    """Routes raw configurations to the grammar of their vendor."""

    def tokenize(self, raw: RawConfig) -> List[LogicalLine]:
        return tokenize(raw.text, get_grammar(raw.vendor))

    def parse(self, raw: RawConfig) -> ExtractedFields:
        """
        Tokenize and extract fields from a raw configuration.

        Args:
            raw: The configuration as supplied by the caller.

        Returns:
            ExtractedFields with unmatched lines kept in `unparsed`.

        Raises:
            InputError: If the vendor is unsupported or the text is empty.
        """
        grammar = get_grammar(raw.vendor)
        lines = tokenize(raw.text, grammar)
        extracted = grammar.extract(lines)
        logger.debug(
            f"{raw.file_name}: {len(lines)} lines, {len(extracted)} fields, "
            f"{len(extracted.unparsed)} unparsed"
        )
        return extracted

    @property
    def supported_vendors(self) -> list:
        return supported_vendors()
