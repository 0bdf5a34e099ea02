"""
State management for MCP server.
Holds the configuration and the read-only detector table shared by all
requests. Requests never share analysis data; only informational counters
are kept here.
"""

from collections import Counter
from datetime import datetime
from typing import Any, Dict, Optional

from forensic_core.config import Config, get_config
from forensics import AnalysisRequest, EvidenceContext, ForensicAnalyst
from forensics.analyst import load_transcript_content
from forensics.detectors import DetectorTable
from forensics.scanner import AnomalyScanner

from .schemas import ForensicAnalysisInput


class ForensicServerState:
    """Lazily builds the analyst from configuration and tracks usage."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        self._analyst: Optional[ForensicAnalyst] = None
        self._started_at = datetime.now()
        self._assessments: Counter = Counter()
        self._failures = 0

    def get_detector_table(self) -> DetectorTable:
        return self.get_analyst().table

    def get_analyst(self) -> ForensicAnalyst:
        """Get or create the analyst for the configured rule table."""
        if self._analyst is None:
            settings = self.config.analysis
            self._analyst = ForensicAnalyst(
                settings.load_detector_table(), settings.to_scoring_policy()
            )
        return self._analyst

    def get_scanner(self) -> AnomalyScanner:
        return self.get_analyst().scanner

    def build_request(self, data: ForensicAnalysisInput) -> AnalysisRequest:
        """Resolve tool input against configured defaults."""
        transcript = data.transcript
        content = load_transcript_content(
            transcript.source.value, transcript.content, transcript.file_reference
        )

        settings = self.config.analysis
        analysis = data.analysis_config
        min_confidence = analysis.min_confidence
        if min_confidence is None:
            min_confidence = settings.min_confidence

        options = self.config.output.to_options()
        requested = data.output_config
        if requested.include_notebook is not None:
            options.include_notebook = requested.include_notebook
        if requested.include_ascii_report is not None:
            options.include_ascii_report = requested.include_ascii_report
        if requested.include_timeline is not None:
            options.include_timeline = requested.include_timeline

        evidence = data.evidence_context
        return AnalysisRequest(
            content=content,
            format=transcript.format,
            detectors=(
                analysis.detectors
                if analysis.detectors is not None
                else settings.detectors
            ),
            min_confidence=min_confidence,
            evidence=EvidenceContext(
                specimen_name=evidence.specimen_name,
                model_family=evidence.model_family,
                is_production=evidence.is_production,
                prior_evidence=evidence.prior_evidence,
            ),
            output=options,
        )

    def record_analysis(self, assessment: str) -> None:
        self._assessments[assessment] += 1

    def record_failure(self) -> None:
        self._failures += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics."""
        return {
            "started_at": self._started_at.isoformat(),
            "analyses_run": sum(self._assessments.values()),
            "failed_requests": self._failures,
            "assessments": dict(self._assessments),
            "detectors": self.get_detector_table().codes,
        }


# Global state instance
_server_state: Optional[ForensicServerState] = None


def get_server_state() -> ForensicServerState:
    """Get the global server state instance."""
    global _server_state
    if _server_state is None:
        _server_state = ForensicServerState()
    return _server_state


def reset_server_state(config: Optional[Config] = None) -> None:
    """Reset the global server state (for testing)."""
    global _server_state
    _server_state = ForensicServerState(config) if config else None
