"""
Module 7 — Analysis Pipeline
Runs RawConfig → tokenize → extract → normalize → evaluate → finalize for
one file, and fans independent files out over a thread pool.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError, as_completed
from typing import Dict, List, Optional, Sequence

from core.errors import PipelineError  # pyre-ignore
from core.finding_ranker import FindingRanker  # pyre-ignore
from core.models import AnalysisResult, CanonicalConfig, RawConfig  # pyre-ignore
from core.normalizer import Normalizer  # pyre-ignore
from core.parser_engine import ParserEngine  # pyre-ignore
from core.rule_engine import RuleEngine  # pyre-ignore


logger = logging.getLogger("netlens.pipeline")

TIMEOUT_KIND = "Timeout"


class ConfigAnalyzer:
    """
    Sequential pipeline for one configuration.
    Holds no per-file state, so one instance may serve many threads.
    """

    def __init__(
        self,
        parser_engine: Optional[ParserEngine] = None,
        normalizer: Optional[Normalizer] = None,
        rule_engine: Optional[RuleEngine] = None,
        ranker: Optional[FindingRanker] = None,
    ):
        self.parser_engine = parser_engine or ParserEngine()
        self.normalizer = normalizer or Normalizer()
        self.rule_engine = rule_engine or RuleEngine()
        self.ranker = ranker or FindingRanker()

    def parse(self, raw: RawConfig) -> CanonicalConfig:
        """
        Tokenize, extract and normalize one configuration.

        Raises:
            InputError: Empty or non-text input, or an unsupported vendor.
            SchemaViolation: A VLAN id could not be read as a number.
        """
        try:
            extracted = self.parser_engine.parse(raw)
            return self.normalizer.normalize(extracted, raw.vendor, raw.file_name)
        except PipelineError as e:
            if not e.file_name:
                e.file_name = raw.file_name
            raise

    def analyze(self, raw: RawConfig) -> AnalysisResult:
        """
        Run the full pipeline for one configuration.

        Returns:
            AnalysisResult with the canonical config and ranked findings.

        Raises:
            PipelineError: On a fatal error; `file_name` is always set.
        """
        logger.debug(f"Analyzing {raw.file_name} as {raw.vendor}")
        config = self.parse(raw)
        findings = self.ranker.finalize(self.rule_engine.evaluate(config))
        logger.info(
            f"{raw.file_name}: {len(findings)} findings, {len(config.warnings)} warnings"
        )
        return AnalysisResult(
            file_name=raw.file_name,
            vendor=config.vendor,
            config=config,
            findings=findings,
        )

    def safe_analyze(self, raw: RawConfig) -> AnalysisResult:
        """Like analyze(), but a fatal error becomes a failed result."""
        try:
            return self.analyze(raw)
        except PipelineError as e:
            logger.warning(f"{raw.file_name}: {e.kind}: {e.cause}")
            return failed_result(raw, e.cause, e.kind)


def failed_result(raw: RawConfig, error: str, kind: str) -> AnalysisResult:
    return AnalysisResult(file_name=raw.file_name, vendor=raw.vendor, error=error, error_kind=kind)


def analyze_batch(
    raws: Sequence[RawConfig],
    max_workers: int = 4,
    timeout: Optional[float] = None,
    analyzer: Optional[ConfigAnalyzer] = None,
) -> List[AnalysisResult]:
    """
    Analyze independent configurations concurrently.

    A file that fails, or that is still running when `timeout` seconds
    have passed, yields a failed AnalysisResult; the other files are
    unaffected. Results are returned in input order.

    Args:
        raws: Configurations to analyze.
        max_workers: Thread pool size.
        timeout: Seconds to wait for the whole batch (None = no limit).
        analyzer: Shared analyzer; a default one is built if omitted.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    analyzer = analyzer or ConfigAnalyzer()
    results: Dict[int, AnalysisResult] = {}

    executor = ThreadPoolExecutor(max_workers=max_workers)
    futures: Dict[Future, int] = {
        executor.submit(analyzer.safe_analyze, raw): index for index, raw in enumerate(raws)
    }
    try:
        for fut in as_completed(futures, timeout=timeout):
            index = futures[fut]
            try:
                results[index] = fut.result()
            except Exception as exc:
                logger.error(f"{raws[index].file_name}: unexpected failure: {exc}")
                results[index] = failed_result(raws[index], str(exc), type(exc).__name__)
    except TimeoutError:
        for fut, index in futures.items():
            if index not in results:
                fut.cancel()
                logger.warning(f"{raws[index].file_name}: timed out after {timeout}s")
                results[index] = failed_result(
                    raws[index], f"analysis did not finish within {timeout}s", TIMEOUT_KIND
                )
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return [results[index] for index in range(len(raws))]
