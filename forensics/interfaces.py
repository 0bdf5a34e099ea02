"""Forensic Analyst: Core Interface Definitions"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Enumerations


class Role(str, Enum):
    """Speaker of a transcript turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TranscriptFormat(str, Enum):
    """Input layouts understood by the parser."""

    JSON = "json"
    STRUCTURED = "structured"  # User:/Assistant: lines
    PLAIN = "plain"
    AUTO = "auto"


class Severity(str, Enum):
    """Anomaly severity tiers, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EvidenceGrade(str, Enum):
    """Strength of evidence behind a diagnosis."""

    E1 = "E1"  # Phenomenological (transcript observation)
    E2 = "E2"  # Behavioral (systematic induction)
    E3 = "E3"  # Computational (circuit localization)
    E4 = "E4"  # Mechanistic (causal intervention)


class Assessment(str, Enum):
    """Verdict tiers, lowest first."""

    CLEAN = "clean"
    MINOR_ANOMALIES = "minor_anomalies"
    SIGNIFICANT_CONCERN = "significant_concern"
    CRITICAL_FAILURE = "critical_failure"


class PatternKind(str, Enum):
    """How a detector pattern is matched against turn text."""

    REGEX = "regex"
    SUBSTRING = "substring"


SEVERITY_ORDER = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}

EVIDENCE_GRADE_DESCRIPTIONS = {
    EvidenceGrade.E1: "Phenomenological",
    EvidenceGrade.E2: "Behavioral",
    EvidenceGrade.E3: "Computational",
    EvidenceGrade.E4: "Mechanistic",
}


# Data Classes


@dataclass(frozen=True)
class Turn:
    """One utterance of a parsed transcript."""

    index: int
    role: Role
    text: str
    timestamp: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class PatternSpec:
    """A single regex or substring test belonging to a detector rule."""

    pattern: str
    kind: PatternKind = PatternKind.REGEX
    ignore_case: bool = False


@dataclass(frozen=True)
class DetectorRule:
    """Static description of one anomaly category."""

    code: str
    name: str
    description: str
    patterns: Tuple[PatternSpec, ...] = ()
    amplifiers: Tuple[str, ...] = ()
    critical_threshold: Optional[float] = None
    indicators: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CompositeRule:
    """Meta-anomaly raised when all required codes land on the same turn."""

    code: str
    requires: Tuple[str, ...]
    description: str = ""
    confidence: float = 0.95
    quote_length: int = 200


@dataclass(frozen=True)
class ScoringPolicy:
    """Confidence tiers and severity ladder used by the scanner."""

    amplified_confidence: float = 0.95
    base_confidence: float = 0.75
    default_critical_threshold: float = 0.9
    high_cutoff: float = 0.75
    medium_cutoff: float = 0.6


@dataclass(frozen=True)
class Anomaly:
    """One detected occurrence of a detector rule or composite."""

    turn_index: int
    code: str
    severity: Severity
    confidence: float
    quoted_span: str
    description: str = ""
    detection_method: str = "regex_pattern"
    evidence_grade: EvidenceGrade = EvidenceGrade.E1
    related_turns: Optional[Tuple[int, ...]] = None


@dataclass(frozen=True)
class AnomalySummary:
    """Counts derived from the final anomaly list."""

    total_anomalies: int
    by_code: Dict[str, int]
    by_severity: Dict[str, int]
    critical_turns: List[int]


@dataclass(frozen=True)
class Verdict:
    """Categorical judgment for a whole transcript."""

    overall_assessment: Assessment
    confidence: float
    evidence_grade: EvidenceGrade
    recommendation: str
    next_steps: List[str]
    primary_diagnosis: Optional[str] = None
    split_brain_likelihood: Optional[float] = None


@dataclass(frozen=True)
class TranscriptStatistics:
    """Shape of the parsed transcript."""

    total_turns: int
    user_turns: int
    assistant_turns: int
    system_turns: int
    avg_turn_length: int
    total_tokens_estimate: int


@dataclass(frozen=True)
class AnalysisResult:
    """Output bundle of one detection run."""

    turns: List[Turn]
    anomalies: List[Anomaly]
    summary: AnomalySummary
    verdict: Verdict


@dataclass
class EvidenceContext:
    """Labelling data; never influences detection."""

    specimen_name: Optional[str] = None
    model_family: Optional[str] = None
    is_production: Optional[bool] = None
    prior_evidence: Optional[EvidenceGrade] = None


@dataclass
class OutputOptions:
    """Which presentation artifacts to render."""

    include_ascii_report: bool = True
    include_notebook: bool = True
    include_timeline: bool = True
    top_anomalies: int = 5


@dataclass
class AnalysisRequest:
    """Fully resolved request for one forensic analysis."""

    content: str
    format: TranscriptFormat = TranscriptFormat.AUTO
    detectors: Optional[List[str]] = None
    min_confidence: float = 0.5
    evidence: EvidenceContext = field(default_factory=EvidenceContext)
    output: OutputOptions = field(default_factory=OutputOptions)
