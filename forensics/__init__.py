"""
Forensic Analyst core: transcript parsing, DSMMD anomaly detection and
verdict reduction.
"""

from .analyst import AGENT_CARD, ForensicAnalyst, load_transcript_content
from .detectors import DEFAULT_RULES, DetectorTable, default_detector_table
from .errors import (
    ForensicAnalysisError,
    InvalidConfigError,
    InvalidSourceError,
    ParseError,
)
from .interfaces import (
    AnalysisRequest,
    AnalysisResult,
    Anomaly,
    DetectorRule,
    EvidenceContext,
    OutputOptions,
    ScoringPolicy,
    Severity,
    Turn,
)
from .parser import TranscriptParser, parse_transcript
from .scanner import AnomalyScanner

__all__ = [
    "AGENT_CARD",
    "ForensicAnalyst",
    "load_transcript_content",
    "DEFAULT_RULES",
    "DetectorTable",
    "default_detector_table",
    "ForensicAnalysisError",
    "InvalidConfigError",
    "InvalidSourceError",
    "ParseError",
    "AnalysisRequest",
    "AnalysisResult",
    "Anomaly",
    "DetectorRule",
    "EvidenceContext",
    "OutputOptions",
    "ScoringPolicy",
    "Severity",
    "Turn",
    "TranscriptParser",
    "parse_transcript",
    "AnomalyScanner",
]
