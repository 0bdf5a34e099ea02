"""
MCP Server for the Forensic Analyst.
Neural forensics for LLM transcripts using the DSMMD taxonomy.

Exposes 5 tools:
- Full forensic analysis (analyze_transcript)
- Transcript parsing (parse_transcript)
- Single-utterance scanning (scan_text)
- Detector catalog and agent card (list_detectors, get_agent_card)
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from forensic_core.logging_config import configure_logging
from forensics import AGENT_CARD
from forensics.errors import ForensicAnalysisError
from forensics.interfaces import EVIDENCE_GRADE_DESCRIPTIONS, Role, Turn
from forensics.parser import TranscriptParser
from forensics.serializers import (
    serialize_anomaly,
    serialize_list,
    serialize_rule,
    serialize_statistics,
    serialize_turn,
)
from forensics.verdict import compute_statistics

from .errors import handle_mcp_error
from .schemas import (
    ForensicAnalysisInput,
    ParseTranscriptInput,
    ScanTextInput,
    validate_input,
)
from .state import get_server_state

# Initialize MCP server
mcp = FastMCP("forensic-analyst")


def _present(**kwargs: Any) -> Dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


# =============================================================================
# ANALYSIS TOOLS (3)
# =============================================================================


@mcp.tool()
@handle_mcp_error
async def analyze_transcript(
    transcript: Dict[str, Any],
    analysis_config: Optional[Dict[str, Any]] = None,
    evidence_context: Optional[Dict[str, Any]] = None,
    output_config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Run a full DSMMD forensic analysis on an LLM transcript.

    Args:
        transcript: {source: 'inline'|'file_reference', content?, file_reference?, format?: 'json'|'structured'|'plain'|'auto'}
        analysis_config: {detectors?: list of DSMMD codes, min_confidence?: 0-1}
        evidence_context: {specimen_name?, model_family?, is_production?, prior_evidence?: 'E1'..'E4'}
        output_config: {include_notebook?, include_ascii_report?, include_timeline?}

    Returns:
        turns, anomalies, dsmmd_summary, verdict, insights and the requested artifacts
    """
    state = get_server_state()
    try:
        data = validate_input(
            ForensicAnalysisInput,
            _present(
                transcript=transcript,
                analysis_config=analysis_config,
                evidence_context=evidence_context,
                output_config=output_config,
            ),
        )
        request = state.build_request(data)
        output = state.get_analyst().run(request)
    except ForensicAnalysisError:
        state.record_failure()
        raise

    state.record_analysis(output["verdict"]["overall_assessment"])
    return output


@mcp.tool()
@handle_mcp_error
async def parse_transcript(content: str, format: str = "auto") -> Dict[str, Any]:
    """
    Parse a transcript into numbered turns without scanning it.

    Args:
        content: Transcript text
        format: 'json', 'structured', 'plain' or 'auto'

    Returns:
        turns: Parsed turns
        statistics: Turn counts and size estimates
    """
    data = validate_input(ParseTranscriptInput, {"content": content, "format": format})
    turns = TranscriptParser(data.format).parse(data.content)

    return {
        "turn_count": len(turns),
        "turns": serialize_list(turns, serialize_turn),
        "statistics": serialize_statistics(compute_statistics(turns)),
    }


@mcp.tool()
@handle_mcp_error
async def scan_text(
    text: str,
    detectors: Optional[List[str]] = None,
    min_confidence: float = 0.5,
) -> Dict[str, Any]:
    """
    Scan a single assistant utterance for DSMMD anomalies.

    Args:
        text: Assistant output to scan
        detectors: DSMMD codes to check (default: all)
        min_confidence: Drop anomalies below this confidence (0-1)

    Returns:
        anomalies: Detected anomalies, composites included
    """
    data = validate_input(
        ScanTextInput,
        _present(text=text, detectors=detectors, min_confidence=min_confidence),
    )
    scanner = get_server_state().get_scanner()
    turn = Turn(index=1, role=Role.ASSISTANT, text=data.text)
    anomalies = scanner.scan([turn], data.detectors, data.min_confidence)

    return {
        "anomaly_count": len(anomalies),
        "anomalies": serialize_list(anomalies, serialize_anomaly),
    }


# =============================================================================
# CATALOG TOOLS (2)
# =============================================================================


@mcp.tool()
@handle_mcp_error
async def list_detectors() -> Dict[str, Any]:
    """
    List the active DSMMD detector rules.

    Returns:
        detectors: Rule codes, names, patterns and thresholds
        composite: The co-occurrence rule, if any
    """
    table = get_server_state().get_detector_table()
    composite = table.composite

    return {
        "count": len(table.rules),
        "detectors": serialize_list(list(table.rules), serialize_rule),
        "composite": (
            {
                "code": composite.code,
                "requires": list(composite.requires),
                "confidence": composite.confidence,
            }
            if composite
            else None
        ),
    }


@mcp.tool()
@handle_mcp_error
async def get_agent_card() -> Dict[str, Any]:
    """
    Describe the Forensic Analyst agent.

    Returns:
        name, version, description, capabilities and schemas
    """
    return dict(AGENT_CARD)


# =============================================================================
# RESOURCES
# =============================================================================


@mcp.resource("forensics://detectors")
def resource_detectors() -> str:
    """Active detector rules."""
    table = get_server_state().get_detector_table()
    lines = ["DSMMD Detectors:"]
    for rule in table.rules:
        lines.append(f"- {rule.code} {rule.name}: {rule.description}")
    if table.composite:
        requires = " + ".join(table.composite.requires)
        lines.append(f"Composite: {table.composite.code} when {requires} share a turn")
    return "\n".join(lines)


@mcp.resource("forensics://agent-card")
def resource_agent_card() -> str:
    """Agent card as JSON."""
    return json.dumps(AGENT_CARD, indent=2)


@mcp.resource("forensics://status")
def resource_status() -> str:
    """Server usage counters."""
    return json.dumps(get_server_state().get_stats(), indent=2)


@mcp.resource("forensics://evidence-grades")
def resource_evidence_grades() -> str:
    """Evidence grade ladder."""
    lines = ["Evidence Grades:"]
    for grade, description in EVIDENCE_GRADE_DESCRIPTIONS.items():
        lines.append(f"- {grade.value}: {description}")
    return "\n".join(lines)


# =============================================================================
# PROMPTS
# =============================================================================


@mcp.prompt("forensic-workflow")
def prompt_forensic_workflow() -> str:
    """Step-by-step guide for analyzing a transcript."""
    return """# Forensic Analysis Workflow

## 1. Check the Transcript Layout
Use `parse_transcript` to confirm turns and roles are split correctly.
- format: "auto" detects JSON, User:/Assistant: lines, or plain text

## 2. Run the Analysis
Use `analyze_transcript` with:
- transcript: {"source": "inline", "content": "..."}
- analysis_config: {"min_confidence": 0.5}
- evidence_context: {"specimen_name": "...", "model_family": "..."}

## 3. Read the Verdict
- clean / minor_anomalies: routine monitoring
- significant_concern: audit the critical and high turns
- critical_failure: escalate, check for SB-1 first

## 4. Follow Up
Open the generated notebook or the ASCII report for the top anomalies.
"""


@mcp.prompt("split-brain-triage")
def prompt_split_brain_triage() -> str:
    """Checklist for a suspected split-brain specimen."""
    return """# Split-Brain Triage

## 1. Confirm Co-occurrence
SB-1 requires a 110.1 (confabulated authority) and a 140.1 (metadata leakage)
on the same assistant turn. Check `dsmmd_summary.by_code`.

## 2. Inspect the Turn
Read `quoted_span` of the SB-1 anomaly and the two base anomalies.

## 3. Near Misses
A split_brain_likelihood of 0.6 means both halves occurred on different turns.
Rerun with `scan_text` on the suspect turns to compare.

## 4. Escalate
Record the specimen with its evidence grade and plan E2 induction.
"""


# =============================================================================
# ENTRY POINT
# =============================================================================


def main(config_path: Optional[Path] = None) -> None:
    """Main entry point for the MCP server."""
    from forensic_core.config import get_config

    from .state import reset_server_state

    config = get_config(config_path)
    configure_logging(
        level=config.logging.level,
        json_output=config.logging.json_output,
        log_file=Path(config.logging.log_file) if config.logging.log_file else None,
        use_colors=config.logging.use_colors,
    )
    reset_server_state(config)
    mcp.run()


if __name__ == "__main__":
    main()
