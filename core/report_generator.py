"""
Module 8 — Report Generator
Renders analysis results as text, JSON or HTML (Jinja2 templates).
"""

import json
import os
from datetime import datetime
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape  # pyre-ignore

from core.finding_ranker import FindingRanker  # pyre-ignore
from core.models import SEVERITIES, AnalysisResult  # pyre-ignore


ENGINE_VERSION = "1.0.0"


class ReportGenerator:
    """Generates analysis reports in text, JSON and HTML formats."""

    def __init__(self, templates_dir: Optional[str] = None):
        self.templates_dir = templates_dir or os.path.join(os.path.dirname(__file__), "templates")
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(["html"]),
        )
        self.ranker = FindingRanker()

    def generate_html(self, results: List[AnalysisResult], output_path: str) -> str:
        """
        Generate an HTML analysis report.

        Args:
            results: One AnalysisResult per analyzed file.
            output_path: Path to write the HTML file.

        Returns:
            Path to the generated HTML file.
        """
        return self.write(output_path, self.render_html(results))

    def generate_json(self, results: List[AnalysisResult], output_path: str) -> str:
        """Generate a JSON results file for programmatic use."""
        return self.write(output_path, self.render_json(results))

    def render_html(self, results: List[AnalysisResult]) -> str:
        template = self.env.get_template("report.html")
        return template.render(**self._template_context(results))

    def render_json(self, results: List[AnalysisResult]) -> str:
        return json.dumps(self.to_dict(results), indent=2, default=str)

    def render_text(self, results: List[AnalysisResult]) -> str:
        """Plain console summary, one section per file."""
        lines = []
        for result in results:
            lines.append(f"== {result.file_name} [{result.vendor}] {result.status.upper()}")
            if result.error:
                lines.append(f"   {result.error_kind}: {result.error}")
                continue
            for warning in result.warnings:
                lines.append(f"   [WARN] {warning}")
            for finding in result.findings:
                lines.append(
                    f"   [{finding.severity.upper():<8}] {finding.id} {finding.type}: {finding.description}"
                )
            if not result.findings:
                lines.append("   No findings.")
        return "\n".join(lines)

    def to_dict(self, results: List[AnalysisResult]) -> dict:
        """Convert analysis results to a JSON-serializable dictionary."""
        all_findings = [f for r in results for f in r.findings]
        return {
            "netlens_version": ENGINE_VERSION,
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "summary": self.ranker.summarize(all_findings),
            "results": [r.to_dict() for r in results],
        }

    def _template_context(self, results: List[AnalysisResult]) -> dict:
        """Build template context from analysis results."""
        all_findings = [f for r in results for f in r.findings]
        return {
            "results": results,
            "summary": self.ranker.summarize(all_findings),
            "severities": SEVERITIES,
            "failed": [r for r in results if r.error],
            "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M"),
            "version": ENGINE_VERSION,
        }

    def write(self, output_path: str, content: str) -> str:
        os.makedirs(os.path.dirname(output_path) if os.path.dirname(output_path) else '.', exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(content)
        return output_path
