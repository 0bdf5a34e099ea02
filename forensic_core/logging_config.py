"""
Structured logging configuration for the Forensic Analyst.
Provides consistent logging across all components with JSON output support.
Console output always goes to stderr so it never mixes with MCP stdio traffic.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

CONTEXT_FIELDS = (
    "event_type",
    "specimen",
    "code",
    "turn_index",
    "severity",
    "confidence",
    "assessment",
    "anomaly_count",
    "duration_ms",
)


class StructuredFormatter(logging.Formatter):
    """JSON-formatted log output for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class HumanFormatter(logging.Formatter):
    """Human-readable log format for console output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        level = record.levelname[:4]

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{level}{self.RESET}"

        extras = []
        if hasattr(record, "code"):
            extras.append(f"code={record.code}")
        if hasattr(record, "turn_index"):
            extras.append(f"turn={record.turn_index}")
        if hasattr(record, "confidence"):
            extras.append(f"conf={record.confidence:.2f}")
        if hasattr(record, "duration_ms"):
            extras.append(f"took={record.duration_ms}ms")

        extra_str = f" [{', '.join(extras)}]" if extras else ""

        return f"{ts} {level} {record.name}: {record.getMessage()}{extra_str}"


class AnalysisLogger:
    """Logger for forensic analysis events with structured context."""

    def __init__(self, name: str = "forensics"):
        self.logger = logging.getLogger(name)
        self._context: Dict[str, Any] = {}

    def set_context(self, **kwargs) -> None:
        """Set persistent context for all log messages."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        self._context.clear()

    def _log(self, level: int, msg: str, **kwargs) -> None:
        extra = {**self._context, **kwargs}
        self.logger.log(level, msg, extra=extra)

    def debug(self, msg: str, **kwargs) -> None:
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs) -> None:
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs) -> None:
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs) -> None:
        self._log(logging.ERROR, msg, **kwargs)

    # Analysis-specific logging methods
    def analysis_started(self, specimen: str, transcript_format: str) -> None:
        self.info(
            f"Analyzing {specimen} ({transcript_format})",
            event_type="analysis_started",
            specimen=specimen,
        )

    def anomaly_detected(
        self, code: str, turn_index: int, severity: str, confidence: float
    ) -> None:
        self.debug(
            f"{severity} anomaly",
            event_type="anomaly_detected",
            code=code,
            turn_index=turn_index,
            severity=severity,
            confidence=confidence,
        )

    def composite_detected(self, code: str, turn_index: int) -> None:
        self.warning(
            "Composite anomaly detected",
            event_type="composite_detected",
            code=code,
            turn_index=turn_index,
        )

    def analysis_complete(
        self, assessment: str, anomaly_count: int, duration_ms: int
    ) -> None:
        self.info(
            f"Analysis complete: {assessment}",
            event_type="analysis_complete",
            assessment=assessment,
            anomaly_count=anomaly_count,
            duration_ms=duration_ms,
        )


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None,
    use_colors: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON format for console output
        log_file: Optional file path for log output
        use_colors: Use colors in console output (ignored if json_output=True)
    """
    numeric_level = getattr(logging, level.upper())

    handlers = []
    console_handler = logging.StreamHandler(sys.stderr)
    if json_output:
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(HumanFormatter(use_colors=use_colors))
    handlers.append(console_handler)

    # File handler (always JSON for machine parsing)
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    for name in ["forensics", "mcp_server", "forensic_core"]:
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)


def get_logger(name: str) -> AnalysisLogger:
    """Get a structured logger instance."""
    return AnalysisLogger(name)
