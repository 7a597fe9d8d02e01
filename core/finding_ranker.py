"""
Module 6 — Finding Ranker
Deduplicates findings, assigns stable ids and orders them by severity.
"""

import logging
from collections import Counter
from dataclasses import replace
from typing import Dict, List

from core.models import SEVERITIES, Finding  # pyre-ignore


logger = logging.getLogger("netlens.finding_ranker")


class FindingRanker:
    """Finalizes the raw findings produced by the rule engine."""

    # Lower rank sorts first
    SEVERITY_RANK: Dict[str, int] = {severity: rank for rank, severity in enumerate(SEVERITIES)}
    UNKNOWN_RANK = len(SEVERITIES)

    def finalize(self, findings: List[Finding]) -> List[Finding]:
        """
        Deduplicate, id and sort findings.

        Two findings are duplicates when type, description and the ordered list
        of devices involved are equal; the first one is kept. Findings without
        an id, or whose id is already taken, get '<category>_<n>'. The sort
        is stable, so equal-severity findings keep their input order.

        Args:
            findings: Raw findings in evaluation order.

        Returns:
            A new list; the input list and its findings are not modified.
        """
        unique: List[Finding] = []
        seen = set()
        for finding in findings:
            key = self.dedup_key(finding)
            if key in seen:
                continue
            seen.add(key)
            unique.append(replace(finding,
                                  devices_involved=list(finding.devices_involved),
                                  details=dict(finding.details)))

        dropped = len(findings) - len(unique)
        if dropped:
            logger.debug(f"Dropped {dropped} duplicate findings")

        self._assign_ids(unique)
        return sorted(unique, key=self.rank)

    def dedup_key(self, finding: Finding) -> tuple:
        return (finding.type, finding.description, tuple(finding.devices_involved))

    def rank(self, finding: Finding) -> int:
        return self.SEVERITY_RANK.get(finding.severity, self.UNKNOWN_RANK)

    def _assign_ids(self, findings: List[Finding]):
        used = set()
        counter = 0
        for finding in findings:
            if finding.id and finding.id not in used:
                used.add(finding.id)
                continue
            while True:
                counter += 1
                candidate = f"{finding.category or 'finding'}_{counter}"
                if candidate not in used:
                    break
            finding.id = candidate
            used.add(candidate)

    def summarize(self, findings: List[Finding]) -> Dict[str, Dict[str, int]]:
        """Counts of findings by severity and by type."""
        by_severity = Counter(f.severity for f in findings)
        by_type = Counter(f.type for f in findings)
        return {
            "total": len(findings),
            "bySeverity": {s: by_severity.get(s, 0) for s in SEVERITIES},
            "byType": dict(sorted(by_type.items())),
        }
