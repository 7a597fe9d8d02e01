#!/usr/bin/env python3
"""
NetLens — Network Configuration Normalization & Analysis Engine
CLI Entry Point

Normalizes Cisco IOS, Juniper JunOS and Arista EOS configurations into
one canonical model and reports security risks, internal conflicts and
best-practice deviations.

Usage:
    python main.py --config <file> [--vendor cisco|junos|arista] [--format text|json|html]
    python main.py --config-dir <directory> [--workers 4] [--output report.html]
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from core.input_handler import InputHandler  # pyre-ignore
from core.models import AnalysisResult, RawConfig  # pyre-ignore
from core.parser_engine import supported_vendors  # pyre-ignore
from core.pipeline import ConfigAnalyzer, analyze_batch, failed_result  # pyre-ignore
from core.report_generator import ReportGenerator  # pyre-ignore


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def get_project_root() -> str:
    """Get the project root directory."""
    return os.path.dirname(os.path.abspath(__file__))


def run_analysis(
    config_path: Optional[str] = None,
    config_dir: Optional[str] = None,
    vendor: Optional[str] = None,
    workers: int = 4,
    timeout: Optional[float] = None,
) -> List[AnalysisResult]:
    """
    Run the NetLens pipeline over one file or a directory of files.

    Pipeline: Input → Tokenize → Extract → Normalize → Evaluate → Rank

    Args:
        config_path: Path to a single configuration file.
        config_dir: Directory of configuration files (analyzed concurrently).
        vendor: Vendor dialect, or None to detect per file.
        workers: Thread pool size for directory runs.
        timeout: Seconds allowed for a directory run.

    Raises:
        FileNotFoundError / InputError: For an unreadable single file.
        PipelineError: For a fatal error in a single file.
    """
    logger = logging.getLogger("netlens")
    handler = InputHandler()

    if config_path:
        raw = handler.load_file(config_path, vendor)
        logger.info(f"Analyzing {raw.file_name} as {raw.vendor}")
        return [ConfigAnalyzer().analyze(raw)]

    raws, rejected = handler.load_directory(config_dir, vendor)
    logger.info(f"Analyzing {len(raws)} files from {config_dir} with {workers} workers")
    results = analyze_batch(raws, max_workers=workers, timeout=timeout)
    for error in rejected:
        name = os.path.basename(error["file"])
        results.append(failed_result(RawConfig(name, vendor or "unknown", ""), error["error"], "InputError"))
    return results


def write_output(results: List[AnalysisResult], output_format: str, output_path: Optional[str]):
    """Print or save the report in the requested format."""
    report_gen = ReportGenerator()

    if output_format == "html":
        output_path = output_path or os.path.join(get_project_root(), "output", "netlens_report.html")
        report_gen.generate_html(results, output_path)
        print(f"  [REPORT] {output_path}")
        return

    content = report_gen.render_json(results) if output_format == "json" else report_gen.render_text(results)
    if output_path:
        report_gen.write(output_path, content)
        print(f"  [REPORT] {output_path}")
    else:
        print(content)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="netlens",
        description="NetLens — Network Configuration Normalization & Analysis Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --config datasets/cisco/access_switch.conf
  python main.py --config edge.conf --vendor junos --format json
  python main.py --config-dir datasets --format html --output report.html
        """
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--config", "-c",
        help="Path to the configuration file to analyze"
    )
    source.add_argument(
        "--config-dir", "-d",
        help="Directory of configuration files to analyze"
    )
    parser.add_argument(
        "--vendor",
        choices=supported_vendors() + ["auto"],
        default="auto",
        help="Vendor dialect (default: detect from content)"
    )
    parser.add_argument(
        "--format", "-f",
        choices=["text", "json", "html"],
        default="text",
        help="Output format (default: text)"
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output file path (default: stdout; output/netlens_report.html for html)"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=4,
        help="Worker threads for --config-dir (default: 4)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed for a --config-dir run (default: no limit)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        results = run_analysis(
            config_path=args.config,
            config_dir=args.config_dir,
            vendor=args.vendor,
            workers=args.workers,
            timeout=args.timeout,
        )
        write_output(results, args.format, args.output)
    except FileNotFoundError as e:
        print(f"\n  [ERROR] File Error: {e}")
        return 1
    except NotADirectoryError as e:
        print(f"\n  [ERROR] File Error: {e}")
        return 1
    except ValueError as e:
        print(f"\n  [ERROR] Validation Error: {e}")
        return 1
    except Exception as e:
        print(f"\n  [ERROR] Unexpected Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    return 1 if any(r.error for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
