"""
Error taxonomy for forensic analysis.
Every error carries a stable code and translates to an MCP-friendly response.
"""

from typing import Any, Dict, List, Optional


class ForensicAnalysisError(Exception):
    """Base exception for forensic analysis errors."""

    def __init__(
        self,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_mcp_error(self) -> Dict[str, Any]:
        """Convert to MCP-friendly error response."""
        return {
            "error": {
                "code": self.code,
                "message": str(self),
                "details": self.details,
            }
        }


class ParseError(ForensicAnalysisError):
    """Raised when a transcript cannot be parsed in the requested format."""

    def __init__(self, reason: str, transcript_format: str = "json"):
        super().__init__(
            f"Transcript parsing failed: {reason}",
            "PARSE_ERROR",
            {"format": transcript_format, "reason": reason},
        )


class InvalidConfigError(ForensicAnalysisError):
    """Raised when analysis configuration or a rule table is invalid."""

    def __init__(self, errors: List[str]):
        super().__init__(
            "Invalid configuration",
            "INVALID_CONFIG",
            {"errors": errors},
        )


class InvalidSourceError(ForensicAnalysisError):
    """Raised when no transcript content can be resolved from the request."""

    def __init__(self, source: str, reason: str):
        super().__init__(
            f"Invalid transcript source '{source}': {reason}",
            "INVALID_SOURCE",
            {"source": source, "reason": reason},
        )
