"""
The Forensic Analyst.
Neural forensics for LLM transcripts using the DSMMD taxonomy: parse, scan,
reduce, then render the requested artifacts.
"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from forensic_core.logging_config import get_logger
from forensics.detectors import DetectorTable, default_detector_table
from forensics.errors import InvalidSourceError
from forensics.interfaces import (
    AnalysisRequest,
    AnalysisResult,
    EvidenceGrade,
    ScoringPolicy,
    TranscriptFormat,
)
from forensics.parser import TranscriptParser
from forensics.report import build_notebook, build_timeline, render_ascii_report
from forensics.scanner import DEFAULT_MIN_CONFIDENCE, AnomalyScanner
from forensics.serializers import (
    serialize_anomaly,
    serialize_list,
    serialize_statistics,
    serialize_summary,
    serialize_turn,
    serialize_verdict,
)
from forensics.verdict import (
    compute_statistics,
    generate_insights,
    render_verdict,
    summarize,
)

AGENT_VERSION = "1.0.0"

AGENT_CARD: Dict[str, Any] = {
    "name": "The Forensic Analyst",
    "version": AGENT_VERSION,
    "description": (
        "Neural forensics agent for LLM transcript analysis using the DSMMD "
        "taxonomy. Detects confabulation, serialization leaks, genre ruptures, "
        "context collapse and split-brain dissociation patterns."
    ),
    "capabilities": [
        "Multi-format transcript parsing (JSON, structured, plain text)",
        "DSMMD anomaly detection (110.1, 140.1, 140.3, 155.2, SB-1)",
        "Evidence grading (E1-E4 phenomenological to mechanistic)",
        "Forensic report generation with ASCII tables",
        "Timeline data for anomaly visualization",
        "Split-brain likelihood estimation",
        "Notebook generation for interactive follow-up",
    ],
    "input_schema": "ForensicAnalysisInput",
    "output_schema": "ForensicAnalysisOutput",
}

log = get_logger(__name__)


def load_transcript_content(
    source: str,
    content: Optional[str] = None,
    file_reference: Optional[Union[str, Path]] = None,
) -> str:
    """Resolve the transcript text for a request.

    Raises:
        InvalidSourceError: If inline content is missing or the file is unreadable
    """
    if source in ("inline", "text"):
        if content is None:
            raise InvalidSourceError(source, "inline transcripts require 'content'")
        return content

    if source == "file_reference":
        if not file_reference:
            raise InvalidSourceError(source, "'file_reference' is required")
        try:
            return Path(file_reference).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidSourceError(source, f"cannot read {file_reference}: {e}")

    raise InvalidSourceError(source, "expected 'inline', 'text' or 'file_reference'")


class ForensicAnalyst:
    """Runs the detection pipeline against an injected detector table."""

    def __init__(
        self,
        table: Optional[DetectorTable] = None,
        policy: Optional[ScoringPolicy] = None,
    ):
        self.table = table or default_detector_table()
        self.scanner = AnomalyScanner(self.table, policy)

    def analyze(
        self,
        content: str,
        transcript_format: Union[TranscriptFormat, str] = TranscriptFormat.AUTO,
        detectors: Optional[Sequence[str]] = None,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        evidence_grade: EvidenceGrade = EvidenceGrade.E1,
    ) -> AnalysisResult:
        """Parse, scan and reduce one transcript.

        Raises:
            ParseError: If JSON content cannot be parsed
            InvalidConfigError: On a bad cutoff or detector code
        """
        turns = TranscriptParser(transcript_format).parse(content)
        anomalies = self.scanner.scan(turns, detectors, min_confidence)

        selected = self.table.select(detectors)
        candidate_codes = list(selected.codes)
        composite = self.table.composite
        if composite and composite.code not in candidate_codes:
            candidate_codes.append(composite.code)

        summary = summarize(anomalies, candidate_codes)
        verdict = render_verdict(summary, composite, evidence_grade)
        return AnalysisResult(
            turns=turns, anomalies=anomalies, summary=summary, verdict=verdict
        )

    def run(
        self, request: AnalysisRequest, generated_at: Optional[str] = None
    ) -> Dict[str, Any]:
        """Full forensic analysis with the requested presentation artifacts."""
        specimen = request.evidence.specimen_name or "Unknown Transcript"
        log.set_context(specimen=specimen)
        try:
            return self._run(request, specimen, generated_at)
        finally:
            log.clear_context()

    def _run(
        self, request: AnalysisRequest, specimen: str, generated_at: Optional[str]
    ) -> Dict[str, Any]:
        started = time.monotonic()
        generated_at = generated_at or datetime.now(timezone.utc).isoformat()
        evidence = request.evidence
        grade = evidence.prior_evidence or EvidenceGrade.E1

        log.analysis_started(specimen, TranscriptFormat(request.format).value)

        result = self.analyze(
            request.content,
            request.format,
            request.detectors,
            request.min_confidence,
            grade,
        )
        stats = compute_statistics(result.turns)

        for anomaly in result.anomalies:
            if anomaly.related_turns is not None:
                log.composite_detected(anomaly.code, anomaly.turn_index)
            else:
                log.anomaly_detected(
                    anomaly.code,
                    anomaly.turn_index,
                    anomaly.severity.value,
                    anomaly.confidence,
                )

        output: Dict[str, Any] = {
            "specimen_name": specimen,
            "model_family": evidence.model_family,
            "is_production": evidence.is_production,
            "analysis_timestamp": generated_at,
            "evidence_grade": grade.value,
            "transcript_statistics": serialize_statistics(stats),
            "turns": serialize_list(result.turns, serialize_turn),
            "anomalies": serialize_list(result.anomalies, serialize_anomaly),
            "dsmmd_summary": serialize_summary(result.summary),
            "verdict": serialize_verdict(result.verdict),
            "insights": generate_insights(result.summary, self.table.composite),
            "recommendations": list(result.verdict.next_steps),
        }

        options = request.output
        if options.include_ascii_report:
            output["ascii_report"] = render_ascii_report(
                stats,
                result.summary,
                result.verdict,
                result.anomalies,
                self.table,
                options.top_anomalies,
            )
        if options.include_notebook:
            output["notebook"] = build_notebook(
                evidence, stats, result.anomalies, result.verdict, generated_at
            )
        if options.include_timeline:
            output["timeline_data"] = build_timeline(result.anomalies)

        log.analysis_complete(
            result.verdict.overall_assessment.value,
            result.summary.total_anomalies,
            int((time.monotonic() - started) * 1000),
        )
        return output
