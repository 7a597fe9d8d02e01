"""
Module 2 — Vendor Detection
Scores configuration text against the signatures of every registered
grammar to pick a dialect when the caller does not name one.
"""

import os
import re
from typing import Dict, List

from core.models import VendorInfo  # pyre-ignore
from core.parser_engine import all_grammars  # pyre-ignore


class VendorDetector:
    """Detects the vendor dialect of a configuration file."""

    # Filename hint patterns
    FILENAME_HINTS: Dict[str, List[str]] = {
        "cisco": [r"cisco", r"\bios\b", r"catalyst"],
        "junos": [r"junos", r"juniper", r"srx", r"\bex\d{4}", r"\.junos$"],
        "arista": [r"arista", r"\beos\b", r"dcs-"],
    }

    MAX_LINES = 300

    def detect(self, text: str, filename: str = "") -> VendorInfo:
        """
        Detect the vendor of a configuration.

        Uses a two-pass approach:
        1. Filename hint matching
        2. Content signature matching against each grammar

        Args:
            text: Raw configuration text.
            filename: Original file name, used for hints.

        Returns:
            VendorInfo with detected vendor and confidence score.
        """
        grammars = all_grammars()
        scores: Dict[str, float] = {g.name: 0.0 for g in grammars}
        matched_patterns: Dict[str, List[str]] = {g.name: [] for g in grammars}

        # Pass 1: Filename hints
        base = os.path.basename(filename or "").lower()
        for vendor, hint_patterns in self.FILENAME_HINTS.items():
            if vendor not in scores:
                continue
            for pattern in hint_patterns:
                if re.search(pattern, base):
                    scores[vendor] += 2.0
                    matched_patterns[vendor].append(f"filename:{pattern}")
                    break

        # Pass 2: Content signatures (first MAX_LINES lines)
        lines = [l.strip() for l in text.splitlines()[:self.MAX_LINES] if l.strip()]
        for grammar in grammars:
            for signature in grammar.signatures:
                if any(signature.match(line) for line in lines):
                    scores[grammar.name] += grammar.SIGNATURE_WEIGHT
                    matched_patterns[grammar.name].append(f"content:{signature.pattern}")

        best_vendor = max(scores, key=lambda k: scores[k]) if scores else "unknown"
        best_score = scores.get(best_vendor, 0.0)

        if best_score == 0:
            return VendorInfo(
                vendor_name="unknown",
                confidence=0.0,
                detection_method="none",
                matched_patterns=[]
            )

        grammar = next(g for g in grammars if g.name == best_vendor)
        total = max(len(grammar.signatures) * grammar.SIGNATURE_WEIGHT, 1.0)
        confidence = min(best_score / (total * 0.5), 1.0)

        return VendorInfo(
            vendor_name=best_vendor,
            confidence=float(int(confidence * 100)) / 100.0,
            detection_method="signature",
            matched_patterns=matched_patterns[best_vendor][:10]
        )
