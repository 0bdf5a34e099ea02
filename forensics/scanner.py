"""
Anomaly scanning for the Forensic Analyst.
Applies detector rules to assistant turns, derives composite anomalies from
co-occurring codes, then applies the confidence cutoff.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from forensics.detectors import DetectorTable, default_detector_table
from forensics.errors import InvalidConfigError
from forensics.interfaces import (
    Anomaly,
    DetectorRule,
    PatternKind,
    Role,
    ScoringPolicy,
    Severity,
    Turn,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.5


def validate_min_confidence(min_confidence: float) -> None:
    """Raise InvalidConfigError unless 0 <= min_confidence <= 1."""
    if not 0.0 <= min_confidence <= 1.0:
        raise InvalidConfigError(
            [f"min_confidence must be within [0, 1], got {min_confidence}"]
        )


class AnomalyScanner:
    """Single-pass, deterministic classifier over a detector table."""

    def __init__(
        self,
        table: Optional[DetectorTable] = None,
        policy: Optional[ScoringPolicy] = None,
    ):
        self.table = table or default_detector_table()
        self.policy = policy or ScoringPolicy()

    def scan(
        self,
        turns: Sequence[Turn],
        detectors: Optional[Sequence[str]] = None,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ) -> List[Anomaly]:
        """Detect anomalies in the assistant turns of a transcript.

        Args:
            turns: Parsed transcript
            detectors: Rule codes to apply (default: every rule in the table)
            min_confidence: Anomalies below this confidence are dropped last

        Returns:
            Per-rule anomalies in turn order followed by composite anomalies

        Raises:
            InvalidConfigError: On an out-of-range cutoff or unknown detector code
        """
        validate_min_confidence(min_confidence)
        table = self.table.select(detectors)

        candidates: List[Anomaly] = []
        for turn in turns:
            if turn.role != Role.ASSISTANT:
                continue
            for rule in table.rules:
                candidates.extend(self._run_rule(table, rule, turn))

        candidates.extend(self.detect_composites(candidates, turns))

        kept = [a for a in candidates if a.confidence >= min_confidence]
        logger.debug(
            f"Scanned {len(turns)} turns: {len(candidates)} candidates, "
            f"{len(kept)} above min_confidence={min_confidence}"
        )
        return kept

    def _run_rule(
        self, table: DetectorTable, rule: DetectorRule, turn: Turn
    ) -> List[Anomaly]:
        anomalies = []
        text = turn.text
        lowered = text.lower()

        for spec, compiled in table.compiled_patterns(rule.code):
            if spec.kind == PatternKind.SUBSTRING:
                span = _find_substring(text, spec.pattern, spec.ignore_case)
                method = "substring"
            else:
                match = compiled.search(text) if compiled else None
                span = match.group(0) if match else None
                method = "regex_pattern"

            if span is None:
                continue

            amplified = any(amp.lower() in lowered for amp in rule.amplifiers)
            confidence = (
                self.policy.amplified_confidence
                if amplified
                else self.policy.base_confidence
            )

            anomalies.append(
                Anomaly(
                    turn_index=turn.index,
                    code=rule.code,
                    severity=self.severity_for(rule, confidence),
                    confidence=confidence,
                    quoted_span=span,
                    description=rule.description,
                    detection_method=method,
                )
            )

        return anomalies

    def severity_for(self, rule: DetectorRule, confidence: float) -> Severity:
        """Map a confidence to a severity tier for the given rule."""
        threshold = rule.critical_threshold
        if threshold is None:
            threshold = self.policy.default_critical_threshold

        if confidence >= threshold:
            return Severity.CRITICAL
        if confidence >= self.policy.high_cutoff:
            return Severity.HIGH
        if confidence >= self.policy.medium_cutoff:
            return Severity.MEDIUM
        return Severity.LOW

    def detect_composites(
        self, anomalies: Sequence[Anomaly], turns: Sequence[Turn]
    ) -> List[Anomaly]:
        """Synthesize at most one composite anomaly per qualifying turn.

        Works on the unfiltered candidate list and only ever appends.
        """
        composite = self.table.composite
        if composite is None:
            return []

        by_turn: Dict[int, List[Anomaly]] = defaultdict(list)
        for anomaly in anomalies:
            by_turn[anomaly.turn_index].append(anomaly)

        turn_text = {turn.index: turn.text for turn in turns}
        required = set(composite.requires)
        results = []

        for turn_index, group in by_turn.items():
            if not required.issubset({a.code for a in group}):
                continue
            if turn_index not in turn_text:
                continue

            results.append(
                Anomaly(
                    turn_index=turn_index,
                    code=composite.code,
                    severity=Severity.CRITICAL,
                    confidence=composite.confidence,
                    quoted_span=turn_text[turn_index][: composite.quote_length] + "...",
                    description=composite.description,
                    detection_method="paired_anomaly_analysis",
                    related_turns=tuple(sorted({a.turn_index for a in group})),
                )
            )
            logger.info(f"Composite {composite.code} detected on turn {turn_index}")

        return results


def _find_substring(text: str, needle: str, ignore_case: bool) -> Optional[str]:
    if not needle:
        return None
    haystack = text.lower() if ignore_case else text
    target = needle.lower() if ignore_case else needle
    pos = haystack.find(target)
    if pos < 0:
        return None
    return text[pos : pos + len(needle)]
