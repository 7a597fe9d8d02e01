"""
Module 5 — Rule Engine Core
Runs the rule catalog against a canonical configuration and
produces findings. Deterministic: same config + same catalog =
identical findings in identical order.
"""

import copy
import logging
from typing import Iterable, List, Optional, Sequence

from core.models import CanonicalConfig, Finding, Issue, Rule  # pyre-ignore
from core.rule_catalog import RULE_CATALOG  # pyre-ignore


logger = logging.getLogger("netlens.rule_engine")


class RuleEngine:
    """
    Core rule evaluation engine.
    Rules are evaluated in catalog order and never see each other's output.
    """

    def __init__(self, catalog: Optional[Sequence[Rule]] = None):
        self.catalog = tuple(catalog) if catalog is not None else RULE_CATALOG

    def evaluate(
        self,
        config: CanonicalConfig,
        categories: Optional[Iterable[str]] = None
    ) -> List[Finding]:
        """
        Evaluate all applicable rules against a canonical config.

        Args:
            config: Canonical configuration to evaluate.
            categories: Optional filter — only evaluate rules in these categories.

        Returns:
            Findings in catalog order, before ranking and deduplication.
        """
        # Rules read a private copy; the caller's config is never touched
        snapshot = copy.deepcopy(config)

        findings: List[Finding] = []
        for rule in self._filter_rules(categories):
            findings.extend(self._evaluate_single_rule(rule, snapshot))

        logger.info(
            f"{config.device_label}: {len(findings)} findings from "
            f"{len(self._filter_rules(categories))} rules"
        )
        return findings

    def _filter_rules(self, categories: Optional[Iterable[str]]) -> List[Rule]:
        """Filter rules by optional category list."""
        if categories is None:
            return list(self.catalog)
        wanted = {c.lower() for c in categories}
        return [rule for rule in self.catalog if rule.category.lower() in wanted]

    def _evaluate_single_rule(self, rule: Rule, config: CanonicalConfig) -> List[Finding]:
        """
        Evaluate a single rule against the config.

        A rule that raises is logged and contributes no findings.
        """
        try:
            issues = list(rule.check(config))
        except Exception as e:
            logger.error(f"Error evaluating rule {rule.rule_id}: {e}")
            return []

        return [self._to_finding(rule, issue, config) for issue in issues]

    def _to_finding(self, rule: Rule, issue: Issue, config: CanonicalConfig) -> Finding:
        return Finding(
            type=rule.finding_type,
            severity=rule.severity,
            description=issue.description,
            devices_involved=[config.device_label],
            details=dict(issue.details),
            recommendation=issue.recommendation or rule.recommendation,
            rule_id=rule.rule_id,
            category=rule.category,
        )
