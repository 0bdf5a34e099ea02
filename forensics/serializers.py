"""
Serialization utilities for forensic results.
Converts frozen dataclasses and enums to JSON-safe structures.
"""

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from forensics.interfaces import (
    Anomaly,
    AnomalySummary,
    DetectorRule,
    TranscriptStatistics,
    Turn,
    Verdict,
)


class ForensicJSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for forensic types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)


def serialize_turn(turn: Turn) -> Dict[str, Any]:
    """Convert a Turn to an MCP-safe dict."""
    data: Dict[str, Any] = {
        "index": turn.index,
        "role": turn.role.value,
        "text": turn.text,
    }
    if turn.timestamp is not None:
        data["timestamp"] = turn.timestamp
    if turn.metadata:
        data["metadata"] = dict(turn.metadata)
    return data


def serialize_anomaly(anomaly: Anomaly) -> Dict[str, Any]:
    """Convert an Anomaly to an MCP-safe dict."""
    data: Dict[str, Any] = {
        "turn_index": anomaly.turn_index,
        "code": anomaly.code,
        "severity": anomaly.severity.value,
        "confidence": anomaly.confidence,
        "quoted_span": anomaly.quoted_span,
        "description": anomaly.description,
        "detection_method": anomaly.detection_method,
        "evidence_grade": anomaly.evidence_grade.value,
    }
    if anomaly.related_turns is not None:
        data["related_turns"] = list(anomaly.related_turns)
    return data


def serialize_summary(summary: AnomalySummary) -> Dict[str, Any]:
    return {
        "total_anomalies": summary.total_anomalies,
        "by_code": dict(summary.by_code),
        "by_severity": dict(summary.by_severity),
        "critical_turns": list(summary.critical_turns),
    }


def serialize_verdict(verdict: Verdict) -> Dict[str, Any]:
    return {
        "overall_assessment": verdict.overall_assessment.value,
        "confidence": verdict.confidence,
        "primary_diagnosis": verdict.primary_diagnosis,
        "split_brain_likelihood": verdict.split_brain_likelihood,
        "evidence_grade": verdict.evidence_grade.value,
        "recommendation": verdict.recommendation,
        "next_steps": list(verdict.next_steps),
    }


def serialize_statistics(stats: TranscriptStatistics) -> Dict[str, Any]:
    return asdict(stats)


def serialize_rule(rule: DetectorRule) -> Dict[str, Any]:
    """Describe a detector rule for catalog listings."""
    return {
        "code": rule.code,
        "name": rule.name,
        "description": rule.description,
        "pattern_count": len(rule.patterns),
        "patterns": [spec.pattern for spec in rule.patterns],
        "amplifiers": list(rule.amplifiers),
        "critical_threshold": rule.critical_threshold,
        "indicators": list(rule.indicators),
    }


def serialize_list(
    items: List[Any], serializer: Callable[[Any], Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Serialize a list of items using the given serializer."""
    return [serializer(item) for item in items]
