"""
Unit tests for AnomalyScanner.
Covers confidence tiering, role filtering, composite synthesis and the
confidence cutoff.
"""

import pytest

from forensics.detectors import DEFAULT_RULES, DetectorTable
from forensics.errors import InvalidConfigError
from forensics.interfaces import (
    DetectorRule,
    PatternKind,
    PatternSpec,
    Role,
    ScoringPolicy,
    Severity,
    Turn,
)
from forensics.parser import parse_transcript
from forensics.scanner import AnomalyScanner


def assistant(text, index=1):
    return Turn(index=index, role=Role.ASSISTANT, text=text)


@pytest.fixture
def scanner():
    return AnomalyScanner()


class TestConfidenceTiers:
    """Tests for amplifier scoring and severity mapping."""

    def test_amplified_match_is_critical(self, scanner):
        anomalies = scanner.scan([assistant("I executed Python code and it definitely worked.")])

        assert len(anomalies) == 1
        assert anomalies[0].code == "110.1"
        assert anomalies[0].confidence == 0.95
        assert anomalies[0].severity == Severity.CRITICAL
        assert anomalies[0].quoted_span == "I executed Python"

    def test_amplifiers_are_case_insensitive(self, scanner):
        anomalies = scanner.scan([assistant("I ran code. DEFINITELY.")])

        assert anomalies[0].confidence == 0.95

    def test_plain_match_is_high(self, scanner):
        anomalies = scanner.scan([assistant("I ran code for you.")])

        assert anomalies[0].confidence == 0.75
        assert anomalies[0].severity == Severity.HIGH
        assert anomalies[0].detection_method == "regex_pattern"

    def test_low_threshold_rule_is_critical_without_amplifier(self, scanner):
        anomalies = scanner.scan([assistant("I am Claude, here to help.")])

        assert anomalies[0].code == "140.3"
        assert anomalies[0].confidence == 0.75
        assert anomalies[0].severity == Severity.CRITICAL

    def test_each_matching_pattern_is_reported(self, scanner):
        anomalies = scanner.scan([assistant("I executed code and I saved the file.")])

        assert [a.code for a in anomalies] == ["110.1", "110.1"]
        assert [a.quoted_span for a in anomalies] == ["I executed code", "I saved "]

    @pytest.mark.parametrize(
        "confidence,expected",
        [
            (0.95, Severity.CRITICAL),
            (0.9, Severity.CRITICAL),
            (0.8, Severity.HIGH),
            (0.75, Severity.HIGH),
            (0.65, Severity.MEDIUM),
            (0.5, Severity.LOW),
        ],
    )
    def test_severity_ladder_with_default_threshold(self, scanner, confidence, expected):
        rule = DetectorRule(code="X", name="X", description="")

        assert scanner.severity_for(rule, confidence) == expected

    def test_policy_changes_base_confidence(self):
        rule = DetectorRule(
            code="900.1",
            name="Marker",
            description="",
            patterns=(PatternSpec("marker"),),
        )
        scanner = AnomalyScanner(DetectorTable([rule]), ScoringPolicy(base_confidence=0.65))

        anomalies = scanner.scan([assistant("a marker")], min_confidence=0.0)

        assert anomalies[0].confidence == 0.65
        assert anomalies[0].severity == Severity.MEDIUM

    def test_substring_pattern(self):
        rule = DetectorRule(
            code="900.2",
            name="Substring",
            description="",
            patterns=(PatternSpec("Sediment", kind=PatternKind.SUBSTRING, ignore_case=True),),
        )
        scanner = AnomalyScanner(DetectorTable([rule]))

        anomalies = scanner.scan([assistant("found sediment here")])

        assert anomalies[0].quoted_span == "sediment"
        assert anomalies[0].detection_method == "substring"


class TestRoleFiltering:
    """Only assistant turns are scanned."""

    def test_user_and_system_turns_are_ignored(self, scanner):
        text = "I executed code and confirmed it at sediment://x"
        turns = [
            Turn(index=1, role=Role.USER, text=text),
            Turn(index=2, role=Role.SYSTEM, text=text),
        ]

        assert scanner.scan(turns) == []

    def test_tool_output_is_not_scanned(self, scanner):
        turns = parse_transcript(
            '[{"role": "tool", "content": "I ran code at sediment://a"}]'
        )

        assert scanner.scan(turns) == []

    def test_anomalies_carry_turn_index(self, scanner):
        turns = parse_transcript("User: I ran code\nAssistant: I ran code too")

        anomalies = scanner.scan(turns)

        assert [a.turn_index for a in anomalies] == [2]


class TestComposite:
    """Tests for split-brain co-occurrence."""

    def test_end_to_end_example(self, scanner):
        turns = parse_transcript(
            "User: What happened?\n"
            "Assistant: I executed Python code to generate sediment://file_abc "
            "and confirmed it."
        )

        anomalies = scanner.scan(turns)

        assert [(a.code, a.confidence, a.severity) for a in anomalies] == [
            ("110.1", 0.95, Severity.CRITICAL),
            ("140.1", 0.75, Severity.HIGH),
            ("SB-1", 0.95, Severity.CRITICAL),
        ]
        composite = anomalies[-1]
        assert composite.turn_index == 2
        assert composite.related_turns == (2,)
        assert composite.detection_method == "paired_anomaly_analysis"
        assert composite.quoted_span == turns[1].text + "..."

    def test_one_composite_per_turn(self, scanner):
        text = "I executed code and I saved sediment://a <|endoftext|> [DEBUG]"

        anomalies = scanner.scan([assistant(text)])
        codes = [a.code for a in anomalies]

        assert codes.count("110.1") == 2
        assert codes.count("140.1") == 3
        assert codes.count("SB-1") == 1

    def test_composite_quote_is_truncated(self, scanner):
        text = "I ran code. sediment://x " + "padding " * 40

        composite = [a for a in scanner.scan([assistant(text)]) if a.code == "SB-1"][0]

        assert composite.quoted_span == text[:200] + "..."

    def test_no_composite_across_turns(self, scanner):
        turns = [assistant("I ran code.", 1), assistant("sediment://x", 2)]

        codes = [a.code for a in scanner.scan(turns)]

        assert codes == ["110.1", "140.1"]

    def test_composite_per_qualifying_turn(self, scanner):
        turns = [
            assistant("I ran code at sediment://a", 1),
            assistant("I ran code at sediment://b", 3),
        ]

        composites = [a for a in scanner.scan(turns) if a.code == "SB-1"]

        assert [a.turn_index for a in composites] == [1, 3]

    def test_composite_needs_both_codes_selected(self, scanner):
        turn = assistant("I ran code at sediment://a")

        assert [a.code for a in scanner.scan([turn], ["110.1"])] == ["110.1"]
        assert [a.code for a in scanner.scan([turn], ["110.1", "140.1"])] == [
            "110.1",
            "140.1",
            "SB-1",
        ]

    def test_table_without_composite(self):
        scanner = AnomalyScanner(DetectorTable(DEFAULT_RULES))

        codes = [a.code for a in scanner.scan([assistant("I ran code at sediment://a")])]

        assert "SB-1" not in codes


class TestConfidenceCutoff:
    """The cutoff is applied after composites are derived."""

    TEXT = "I executed Python code, confirmed. sediment://x"

    def test_cutoff_keeps_composite_from_unfiltered_candidates(self, scanner):
        anomalies = scanner.scan([assistant(self.TEXT)], min_confidence=0.9)

        assert [a.code for a in anomalies] == ["110.1", "SB-1"]

    def test_cutoff_above_every_confidence_drops_everything(self, scanner):
        assert scanner.scan([assistant(self.TEXT)], min_confidence=0.96) == []

    def test_zero_cutoff_keeps_everything(self, scanner):
        assert len(scanner.scan([assistant(self.TEXT)], min_confidence=0.0)) == 3

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_out_of_range_cutoff(self, scanner, value):
        with pytest.raises(InvalidConfigError):
            scanner.scan([], min_confidence=value)

    def test_unknown_detector(self, scanner):
        with pytest.raises(InvalidConfigError):
            scanner.scan([assistant("hi")], ["404.0"])


class TestDeterminism:
    def test_repeated_scans_are_identical(self, scanner):
        turns = parse_transcript("Assistant: I ran code at sediment://a\nUser: ok")

        assert scanner.scan(turns) == scanner.scan(turns)
