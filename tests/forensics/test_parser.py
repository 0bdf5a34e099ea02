"""
Unit tests for TranscriptParser.
Covers format detection, the three layouts and their edge cases.
"""

import json

import pytest

from forensics.errors import ParseError
from forensics.interfaces import Role, TranscriptFormat, Turn
from forensics.parser import TranscriptParser, detect_format, parse_transcript


class TestFormatDetection:
    """Tests for auto-detection of transcript layouts."""

    @pytest.mark.parametrize(
        "content,expected",
        [
            ('[{"role": "user", "content": "hi"}]', TranscriptFormat.JSON),
            ('   {"messages": []}', TranscriptFormat.JSON),
            ("User: hi\nAssistant: ok", TranscriptFormat.STRUCTURED),
            ("Preamble\nassistant: lower-case marker", TranscriptFormat.STRUCTURED),
            ("Just some model output.", TranscriptFormat.PLAIN),
            ("The User: marker is not at line start", TranscriptFormat.PLAIN),
        ],
    )
    def test_detect_format(self, content, expected):
        assert detect_format(content) == expected


class TestStructuredParsing:
    """Tests for User:/Assistant:/System: transcripts."""

    def test_turn_numbering(self):
        turns = parse_transcript("User: hi\nAssistant: ok\n")

        assert turns == [
            Turn(index=1, role=Role.USER, text="hi"),
            Turn(index=2, role=Role.ASSISTANT, text="ok"),
        ]

    def test_continuation_lines_are_joined(self):
        content = (
            "User: question\n"
            "Assistant: line one\n"
            "line two\n"
            "\n"
            "System: note  \n"
        )
        turns = parse_transcript(content, "structured")

        assert [t.role for t in turns] == [Role.USER, Role.ASSISTANT, Role.SYSTEM]
        assert turns[1].text == "line one\nline two"
        assert turns[2].text == "note"
        assert [t.index for t in turns] == [1, 2, 3]

    def test_markers_are_case_insensitive(self):
        turns = parse_transcript("user: a\nASSISTANT: b\nsystem: c", "structured")

        assert [t.role for t in turns] == [Role.USER, Role.ASSISTANT, Role.SYSTEM]

    def test_preamble_becomes_assistant_turn(self):
        turns = parse_transcript("Preamble text\nUser: hi", "structured")

        assert turns[0] == Turn(index=1, role=Role.ASSISTANT, text="Preamble text")
        assert turns[1].role == Role.USER

    def test_marker_without_text_starts_turn(self):
        turns = parse_transcript("User:\nhello there", "structured")

        assert turns == [Turn(index=1, role=Role.USER, text="hello there")]

    def test_empty_input_yields_no_turns(self):
        assert parse_transcript("", "structured") == []


class TestJSONParsing:
    """Tests for JSON transcripts."""

    def test_array_of_messages(self):
        content = json.dumps(
            [
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello", "model": "gpt-4o"},
            ]
        )
        turns = parse_transcript(content)

        assert len(turns) == 2
        assert turns[0].role == Role.USER
        assert turns[1].text == "hello"
        assert turns[1].metadata == {"model": "gpt-4o"}

    def test_object_with_messages(self):
        content = json.dumps({"messages": [{"role": "system", "text": "be brief"}]})
        turns = parse_transcript(content)

        assert turns == [Turn(index=1, role=Role.SYSTEM, text="be brief")]

    def test_role_defaults_to_assistant(self):
        turns = parse_transcript('[{"content": "orphan"}]')

        assert turns[0].role == Role.ASSISTANT

    def test_content_parts_are_joined(self):
        content = json.dumps(
            [{"role": "assistant", "content": [{"type": "text", "text": "a"}, "b"]}]
        )
        turns = parse_transcript(content)

        assert turns[0].text == "a\nb"

    def test_timestamp_is_kept(self):
        turns = parse_transcript(
            '[{"role": "user", "content": "x", "timestamp": "2025-01-01T00:00:00Z"}]'
        )

        assert turns[0].timestamp == "2025-01-01T00:00:00Z"

    def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ParseError) as exc_info:
            parse_transcript("[not json")

        assert exc_info.value.code == "PARSE_ERROR"
        assert exc_info.value.details["format"] == "json"

    def test_explicit_json_on_empty_input_fails(self):
        with pytest.raises(ParseError):
            TranscriptParser(TranscriptFormat.JSON).parse("")

    def test_unknown_role_raises(self):
        with pytest.raises(ParseError, match="unknown role"):
            parse_transcript('[{"role": "critic", "content": "x"}]')

    def test_tool_messages_become_system_turns(self):
        content = json.dumps(
            [
                {"role": "user", "content": "weather?"},
                {"role": "assistant", "content": "", "tool_calls": [{"id": "c1"}]},
                {"role": "tool", "content": "sunny"},
                {"role": "Function", "content": "22C"},
                {"role": "assistant", "content": "It is sunny."},
            ]
        )
        turns = parse_transcript(content)

        assert [t.role for t in turns] == [
            Role.USER,
            Role.ASSISTANT,
            Role.SYSTEM,
            Role.SYSTEM,
            Role.ASSISTANT,
        ]
        assert [t.index for t in turns] == [1, 2, 3, 4, 5]
        assert turns[2].text == "sunny"
        assert turns[1].metadata == {"tool_calls": [{"id": "c1"}]}

    def test_non_object_message_raises(self):
        with pytest.raises(ParseError):
            parse_transcript('["just a string"]')

    def test_scalar_document_raises(self):
        with pytest.raises(ParseError):
            TranscriptParser("json").parse("42")


class TestPlainParsing:
    """Tests for plain text transcripts."""

    def test_single_assistant_turn(self):
        turns = parse_transcript("  Some output.\nMore output.  ")

        assert turns == [
            Turn(index=1, role=Role.ASSISTANT, text="Some output.\nMore output.")
        ]

    def test_empty_input_yields_no_turns(self):
        assert parse_transcript("   ", "plain") == []
        assert parse_transcript("") == []
