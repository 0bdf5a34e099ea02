"""
Transcript parsing for the Forensic Analyst.
Turns raw JSON, role-tagged or plain text into an ordered list of turns.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

from forensics.errors import ParseError
from forensics.interfaces import Role, TranscriptFormat, Turn

logger = logging.getLogger(__name__)

ROLE_MARKER = re.compile(r"^(User|Assistant|System):\s*(.*)$", re.IGNORECASE)
ROLE_MARKER_ANYWHERE = re.compile(
    r"^(User|Assistant|System):", re.IGNORECASE | re.MULTILINE
)

# Tool results are kept as turns but never scanned
NON_CONVERSATIONAL_ROLES = ("tool", "function")


def detect_format(content: str) -> TranscriptFormat:
    """Guess the layout of a transcript."""
    trimmed = content.strip()

    if trimmed.startswith("{") or trimmed.startswith("["):
        return TranscriptFormat.JSON

    if ROLE_MARKER_ANYWHERE.search(trimmed):
        return TranscriptFormat.STRUCTURED

    return TranscriptFormat.PLAIN


class TranscriptParser:
    """Parses a transcript string into turns.

    Args:
        transcript_format: Layout of the input; ``auto`` sniffs it from the content
    """

    def __init__(
        self, transcript_format: Union[TranscriptFormat, str] = TranscriptFormat.AUTO
    ):
        self.format = TranscriptFormat(transcript_format)

    def parse(self, content: str) -> List[Turn]:
        """Parse content into 1-based, sequentially numbered turns.

        Raises:
            ParseError: If the content is not valid JSON in ``json`` mode
        """
        fmt = self.format
        if fmt == TranscriptFormat.AUTO:
            fmt = detect_format(content)
            logger.debug(f"Auto-detected transcript format: {fmt.value}")

        if fmt == TranscriptFormat.JSON:
            turns = self._parse_json(content)
        elif fmt == TranscriptFormat.STRUCTURED:
            turns = self._parse_structured(content)
        else:
            turns = self._parse_plain(content)

        logger.debug(f"Parsed {len(turns)} turns as {fmt.value}")
        return turns

    def _parse_json(self, content: str) -> List[Turn]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(str(e), TranscriptFormat.JSON.value) from e

        if isinstance(data, list):
            messages = data
        elif isinstance(data, dict):
            messages = data.get("messages") or []
        else:
            raise ParseError(
                "expected a list of messages or an object with 'messages'",
                TranscriptFormat.JSON.value,
            )

        if not isinstance(messages, list):
            raise ParseError("'messages' must be a list", TranscriptFormat.JSON.value)

        turns = []
        for idx, msg in enumerate(messages):
            if not isinstance(msg, dict):
                raise ParseError(
                    f"message {idx + 1} is not an object", TranscriptFormat.JSON.value
                )
            turns.append(
                Turn(
                    index=idx + 1,
                    role=self._coerce_role(msg.get("role"), idx + 1),
                    text=_message_text(msg),
                    timestamp=msg.get("timestamp"),
                    metadata=_message_metadata(msg),
                )
            )
        return turns

    def _parse_structured(self, content: str) -> List[Turn]:
        turns: List[Turn] = []
        current_role = Role.ASSISTANT
        current_lines: List[str] = []

        def flush() -> None:
            if current_lines:
                turns.append(
                    Turn(
                        index=len(turns) + 1,
                        role=current_role,
                        text="\n".join(current_lines).strip(),
                    )
                )

        for line in content.splitlines():
            match = ROLE_MARKER.match(line)
            if match:
                flush()
                current_lines = [match.group(2)]
                current_role = Role(match.group(1).lower())
            elif line.strip():
                current_lines.append(line)

        flush()
        return turns

    def _parse_plain(self, content: str) -> List[Turn]:
        text = content.strip()
        if not text:
            return []
        return [Turn(index=1, role=Role.ASSISTANT, text=text)]

    @staticmethod
    def _coerce_role(value: Optional[str], index: int) -> Role:
        if value is None or value == "":
            return Role.ASSISTANT
        role = str(value).lower()
        if role in NON_CONVERSATIONAL_ROLES:
            return Role.SYSTEM
        try:
            return Role(role)
        except ValueError:
            raise ParseError(
                f"message {index} has unknown role '{value}'",
                TranscriptFormat.JSON.value,
            ) from None


def _message_text(msg: Dict[str, Any]) -> str:
    text = msg.get("content") or msg.get("text") or ""
    if isinstance(text, list):
        # Content-part arrays: keep only the textual parts
        return "\n".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in text
        )
    return str(text)


def _message_metadata(msg: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    metadata = {
        key: msg[key] for key in ("model", "temperature", "tool_calls") if key in msg
    }
    return metadata or None


def parse_transcript(
    content: str, transcript_format: Union[TranscriptFormat, str] = TranscriptFormat.AUTO
) -> List[Turn]:
    """Convenience wrapper around :class:`TranscriptParser`."""
    return TranscriptParser(transcript_format).parse(content)
