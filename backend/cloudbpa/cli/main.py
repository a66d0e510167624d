#!/usr/bin/env python3
"""
CLI tool for multi-framework analysis and differential analysis
Runs an analysis from catalog and resource files, and diffs two saved snapshots
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from cloudbpa.config import LOG_LEVELS, get_settings
from cloudbpa.models import AnalysisOptions, AnalysisSnapshot, AnalysisStatus, DiffOptions, DiffThreshold, Resource
from cloudbpa.services.drift import DifferentialAnalyzer
from cloudbpa.services.engine import EngineError, MultiFrameworkOrchestrator
from cloudbpa.services.framework import FrameworkRegistry, InMemoryDefinitionStore

logger = logging.getLogger(__name__)

EXIT_CODES = {
    AnalysisStatus.COMPLETED: 0,
    AnalysisStatus.FAILED: 1,
    AnalysisStatus.PARTIAL: 2,
}


def _read_document(path: str):
    """Read a JSON or YAML document; the file suffix selects the parser."""
    with open(path, "r", encoding="utf-8") as f:
        if Path(path).suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def load_resources(path: str) -> List[Resource]:
    """Load resources from a list document or a mapping with a 'resources' key."""
    data = _read_document(path)
    if isinstance(data, dict):
        data = data.get("resources", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of resources")
    return [Resource.model_validate(entry) for entry in data]


def load_snapshot(path: str) -> AnalysisSnapshot:
    """Load an analysis snapshot previously written by the analyze command."""
    return AnalysisSnapshot.model_validate(_read_document(path))


def write_output(payload: dict, output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        print(f"Results exported to {output}")
    else:
        print(text)


async def run_analysis(args) -> int:
    """Run a multi-framework analysis and emit the analysis snapshot"""
    settings = get_settings()

    store = InMemoryDefinitionStore.from_file(args.catalog)
    resources = load_resources(args.resources)

    framework_ids = args.framework or [s.framework_id for s in store.tenant_selections(args.tenant)]
    if not framework_ids:
        print(f"No frameworks selected for tenant {args.tenant}. Use --framework to choose frameworks.")
        return 1

    overrides = {"parallel_execution": not args.sequential}
    if args.timeout:
        overrides["analysis_timeout_seconds"] = args.timeout
    options = AnalysisOptions.from_settings(settings, **overrides)

    orchestrator = MultiFrameworkOrchestrator(FrameworkRegistry.from_settings(store, settings), settings=settings)
    run = await orchestrator.analyze(args.tenant, resources, framework_ids, options)
    result = run.result

    if args.output:
        print(f"Analysis {result.analysis_id}: {result.status.value}")
        print(f"Overall Score: {result.overall_score:.2f}%")
        print(f"Total Findings: {result.total_findings} (risk: {result.risk_level})")
        for framework_id, score in result.framework_scores.items():
            line = f"  {framework_id:30} {score.status.value:10} {score.score:6.2f}%"
            if score.error:
                line += f"  ({score.error})"
            print(line)

    write_output(AnalysisSnapshot.from_run(run, resources).to_json_dict(), args.output)
    return EXIT_CODES[result.status]


async def run_diff(args) -> int:
    """Compare two saved analysis snapshots"""
    baseline = load_snapshot(args.baseline)
    comparison = load_snapshot(args.comparison)

    result = DifferentialAnalyzer().diff(baseline, comparison, DiffOptions(threshold=DiffThreshold(args.threshold)))

    if args.output:
        print(f"Score change: {result.security_score_change:+.2f} (risk {result.security_risk_level.value})")
        print(f"Total changes: {result.total_changes}")

    write_output(result.to_json_dict(), args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudbpa",
        description="Multi-framework rule evaluation and differential analysis tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze resources against every framework selected by a tenant
  cloudbpa analyze --catalog catalog.yaml --resources resources.json --tenant acme

  # Analyze two specific frameworks sequentially and save the snapshot
  cloudbpa analyze --catalog catalog.yaml --resources resources.json --tenant acme \\
    --framework aws-wa --framework cis-aws --sequential --output run-2.json

  # Diff two saved snapshots, listing only high and critical changes
  cloudbpa diff --baseline run-1.json --comparison run-2.json --threshold high
        """,
    )
    parser.add_argument(
        "--log-level", type=str.upper, choices=LOG_LEVELS, help="Override the configured log level"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", help="Run a multi-framework analysis")
    analyze_parser.add_argument("--catalog", required=True, help="YAML/JSON catalog with frameworks and selections")
    analyze_parser.add_argument("--resources", required=True, help="YAML/JSON file containing resources")
    analyze_parser.add_argument("--tenant", required=True, help="Tenant whose selections apply")
    analyze_parser.add_argument(
        "--framework",
        action="append",
        help="Framework id to evaluate (repeatable; default: all frameworks selected by the tenant)",
    )
    analyze_parser.add_argument("--sequential", action="store_true", help="Execute frameworks one at a time")
    analyze_parser.add_argument("--timeout", type=float, help="Overall analysis budget in seconds")
    analyze_parser.add_argument("--output", help="Output file for the analysis snapshot (JSON)")

    diff_parser = subparsers.add_parser("diff", help="Compare two analysis snapshots")
    diff_parser.add_argument("--baseline", required=True, help="Baseline snapshot file")
    diff_parser.add_argument("--comparison", required=True, help="Comparison snapshot file")
    diff_parser.add_argument(
        "--threshold",
        choices=[t.value for t in DiffThreshold],
        default=DiffThreshold.ALL.value,
        help="Minimum severity of listed compliance changes (default: all)",
    )
    diff_parser.add_argument("--output", help="Output file for the differential result (JSON)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    logging.basicConfig(level=(args.log_level or settings.log_level).upper(), format=settings.log_format)

    try:
        if args.command == "analyze":
            return asyncio.run(run_analysis(args))
        elif args.command == "diff":
            return asyncio.run(run_diff(args))
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except EngineError as e:
        logger.debug("Engine error details: %s", e.to_dict())
        print(f"Error: {e.message}")
        return 1
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
