"""
Tests for MCP input schemas and server state.
"""

import pytest

from forensic_core.config import Config
from forensics import InvalidConfigError, InvalidSourceError
from forensics.interfaces import EvidenceGrade, TranscriptFormat
from mcp_server.schemas import (
    ForensicAnalysisInput,
    ScanTextInput,
    TranscriptSource,
    validate_input,
)
from mcp_server.state import ForensicServerState


class TestSchemas:
    """Tests for pydantic input validation."""

    def test_defaults(self):
        data = validate_input(ForensicAnalysisInput, {"transcript": {"content": "x"}})

        assert data.transcript.source == TranscriptSource.INLINE
        assert data.transcript.format == TranscriptFormat.AUTO
        assert data.analysis_config.detectors is None
        assert data.analysis_config.min_confidence is None
        assert data.output_config.include_notebook is None

    def test_enums_are_parsed(self):
        data = validate_input(
            ForensicAnalysisInput,
            {
                "transcript": {"source": "text", "content": "x", "format": "plain"},
                "evidence_context": {"prior_evidence": "E3"},
            },
        )

        assert data.transcript.source == TranscriptSource.TEXT
        assert data.transcript.format == TranscriptFormat.PLAIN
        assert data.evidence_context.prior_evidence == EvidenceGrade.E3

    def test_missing_transcript(self):
        with pytest.raises(InvalidConfigError) as exc_info:
            validate_input(ForensicAnalysisInput, {})

        assert exc_info.value.details["errors"][0].startswith("transcript:")

    def test_bad_evidence_grade(self):
        with pytest.raises(InvalidConfigError):
            validate_input(
                ForensicAnalysisInput,
                {"transcript": {"content": "x"}, "evidence_context": {"prior_evidence": "E9"}},
            )

    @pytest.mark.parametrize("value", [-0.01, 1.01])
    def test_min_confidence_bounds(self, value):
        with pytest.raises(InvalidConfigError) as exc_info:
            validate_input(ScanTextInput, {"text": "x", "min_confidence": value})

        assert exc_info.value.details["errors"][0].startswith("min_confidence:")


class TestServerState:
    """Tests for request building against configuration."""

    def test_config_defaults_apply(self):
        config = Config()
        config.analysis.min_confidence = 0.8
        config.analysis.detectors = ["110.1"]
        config.output.include_notebook = False
        state = ForensicServerState(config)
        data = validate_input(ForensicAnalysisInput, {"transcript": {"content": "x"}})

        request = state.build_request(data)

        assert request.min_confidence == 0.8
        assert request.detectors == ["110.1"]
        assert request.output.include_notebook is False
        assert request.output.include_ascii_report is True

    def test_request_overrides_config(self):
        config = Config()
        config.analysis.min_confidence = 0.8
        state = ForensicServerState(config)
        data = validate_input(
            ForensicAnalysisInput,
            {
                "transcript": {"content": "x"},
                "analysis_config": {"min_confidence": 0.0, "detectors": ["140.1"]},
                "output_config": {"include_timeline": False},
            },
        )

        request = state.build_request(data)

        assert request.min_confidence == 0.0
        assert request.detectors == ["140.1"]
        assert request.output.include_timeline is False

    def test_missing_content(self):
        state = ForensicServerState(Config())
        data = validate_input(ForensicAnalysisInput, {"transcript": {"source": "inline"}})

        with pytest.raises(InvalidSourceError):
            state.build_request(data)

    def test_analyst_is_shared(self):
        state = ForensicServerState(Config())

        assert state.get_analyst() is state.get_analyst()
        assert state.get_scanner() is state.get_analyst().scanner

    def test_stats(self):
        state = ForensicServerState(Config())
        state.record_analysis("clean")
        state.record_analysis("clean")
        state.record_analysis("critical_failure")
        state.record_failure()

        stats = state.get_stats()

        assert stats["analyses_run"] == 3
        assert stats["failed_requests"] == 1
        assert stats["assessments"] == {"clean": 2, "critical_failure": 1}
