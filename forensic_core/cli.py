"""
CLI interface for the Forensic Analyst.
Runs analyses from the shell, inspects the detector table and starts the MCP server.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from forensic_core import __version__
from forensic_core.config import Config, get_config
from forensic_core.logging_config import configure_logging
from forensics import AnalysisRequest, EvidenceContext, ForensicAnalyst
from forensics.errors import ForensicAnalysisError
from forensics.interfaces import Assessment, EvidenceGrade, TranscriptFormat
from forensics.serializers import ForensicJSONEncoder

ASSESSMENT_RANK = {assessment: rank for rank, assessment in enumerate(Assessment)}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="forensic-analyst",
        description="Neural forensics for LLM transcripts (DSMMD taxonomy)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", type=Path, default=None, help="Configuration file path"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a transcript")
    analyze_parser.add_argument(
        "transcript", help="Transcript file path, or '-' to read stdin"
    )
    analyze_parser.add_argument(
        "--format",
        choices=[f.value for f in TranscriptFormat],
        default=TranscriptFormat.AUTO.value,
        help="Transcript layout",
    )
    analyze_parser.add_argument(
        "--detectors", nargs="+", default=None, help="DSMMD codes to check"
    )
    analyze_parser.add_argument(
        "--min-confidence", type=float, default=None, help="Confidence cutoff (0-1)"
    )
    analyze_parser.add_argument("--specimen", default=None, help="Specimen name")
    analyze_parser.add_argument("--model-family", default=None, help="Model family")
    analyze_parser.add_argument(
        "--evidence-grade",
        choices=[g.value for g in EvidenceGrade],
        default=None,
        help="Prior evidence grade",
    )
    analyze_parser.add_argument(
        "--output",
        choices=["report", "json", "notebook"],
        default="report",
        help="What to print",
    )
    analyze_parser.add_argument(
        "--out", type=Path, default=None, help="Write output to this file"
    )
    analyze_parser.add_argument(
        "--fail-on",
        choices=[a.value for a in Assessment if a != Assessment.CLEAN],
        default=None,
        help="Exit with status 2 when the verdict reaches this tier",
    )

    # Detectors command
    detectors_parser = subparsers.add_parser(
        "detectors", help="List the active detector rules"
    )
    detectors_parser.add_argument(
        "--format", choices=["table", "json"], default="table", help="Output format"
    )

    # Config command
    config_parser = subparsers.add_parser("config", help="Show or initialize configuration")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Write the current configuration to the state directory",
    )

    # Serve command
    subparsers.add_parser("serve", help="Run the MCP server over stdio")

    return parser


def _read_transcript(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _emit(text: str, out: Optional[Path]) -> None:
    if out is None:
        print(text)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    print(f"Wrote {out}")


def cmd_analyze(args: argparse.Namespace, config: Config) -> int:
    """Analyze a transcript file."""
    try:
        content = _read_transcript(args.transcript)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Cannot read transcript: {e}", file=sys.stderr)
        return 1

    settings = config.analysis
    options = config.output.to_options()
    options.include_ascii_report = args.output == "report"
    options.include_notebook = args.output == "notebook"

    request = AnalysisRequest(
        content=content,
        format=TranscriptFormat(args.format),
        detectors=args.detectors if args.detectors is not None else settings.detectors,
        min_confidence=(
            args.min_confidence
            if args.min_confidence is not None
            else settings.min_confidence
        ),
        evidence=EvidenceContext(
            specimen_name=args.specimen,
            model_family=args.model_family,
            prior_evidence=(
                EvidenceGrade(args.evidence_grade) if args.evidence_grade else None
            ),
        ),
        output=options,
    )

    try:
        analyst = ForensicAnalyst(
            settings.load_detector_table(), settings.to_scoring_policy()
        )
        output = analyst.run(request)
    except ForensicAnalysisError as e:
        print(json.dumps(e.to_mcp_error(), indent=2), file=sys.stderr)
        return 1

    if args.output == "report":
        _emit(output["ascii_report"], args.out)
    elif args.output == "notebook":
        _emit(json.dumps(output["notebook"], indent=2), args.out)
    else:
        _emit(json.dumps(output, indent=2, cls=ForensicJSONEncoder), args.out)

    if args.fail_on:
        reached = Assessment(output["verdict"]["overall_assessment"])
        if ASSESSMENT_RANK[reached] >= ASSESSMENT_RANK[Assessment(args.fail_on)]:
            return 2
    return 0


def cmd_detectors(args: argparse.Namespace, config: Config) -> int:
    """List the active detector rules."""
    try:
        table = config.analysis.load_detector_table()
    except ForensicAnalysisError as e:
        print(json.dumps(e.to_mcp_error(), indent=2), file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(table.to_dict(), indent=2))
        return 0

    print(f"{'Code':<8} {'Patterns':<10} {'Critical':<10} {'Name'}")
    print("-" * 60)
    for rule in table.rules:
        threshold = (
            f"{rule.critical_threshold:.2f}"
            if rule.critical_threshold is not None
            else "default"
        )
        print(f"{rule.code:<8} {len(rule.patterns):<10} {threshold:<10} {rule.name}")

    if table.composite:
        requires = " + ".join(table.composite.requires)
        print(f"\nComposite {table.composite.code}: {requires} on the same turn")
    return 0


def cmd_config(args: argparse.Namespace, config: Config) -> int:
    """Show or initialize configuration."""
    if args.init:
        path = Path(config.state_dir) / "config.json"
        if path.exists():
            print(f"Already initialized at {path}")
            return 0
        config.save(path)
        print(f"Initialized configuration at {path}")
        return 0

    print("Current Configuration")
    print("-" * 40)
    for section, values in config.to_dict().items():
        if isinstance(values, dict):
            for key, value in values.items():
                print(f"{section}.{key}: {value}")
        else:
            print(f"{section}: {values}")
    return 0


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Run the MCP server."""
    from mcp_server.server import main as serve

    serve(args.config)
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = get_config(args.config)
    except ForensicAnalysisError as e:
        print(json.dumps(e.to_mcp_error(), indent=2), file=sys.stderr)
        return 1

    if args.command != "serve":
        configure_logging(
            level=config.logging.level,
            json_output=config.logging.json_output,
            use_colors=config.logging.use_colors,
        )

    commands = {
        "analyze": cmd_analyze,
        "detectors": cmd_detectors,
        "config": cmd_config,
        "serve": cmd_serve,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args, config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
