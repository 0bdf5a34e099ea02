"""
Centralized configuration management for the Forensic Analyst.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from forensics.detectors import DetectorTable, default_detector_table
from forensics.errors import InvalidConfigError
from forensics.interfaces import OutputOptions, ScoringPolicy

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".forensic-analyst"

# Settings that must lie in [0, 1]
SCORING_FIELDS = (
    "min_confidence",
    "amplified_confidence",
    "base_confidence",
    "default_critical_threshold",
    "high_cutoff",
    "medium_cutoff",
)


@dataclass
class AnalysisSettings:
    """Detection settings."""

    min_confidence: float = 0.5
    detectors: Optional[List[str]] = None
    rules_file: Optional[str] = None
    amplified_confidence: float = 0.95
    base_confidence: float = 0.75
    default_critical_threshold: float = 0.9
    high_cutoff: float = 0.75
    medium_cutoff: float = 0.6

    def to_scoring_policy(self) -> ScoringPolicy:
        return ScoringPolicy(
            amplified_confidence=self.amplified_confidence,
            base_confidence=self.base_confidence,
            default_critical_threshold=self.default_critical_threshold,
            high_cutoff=self.high_cutoff,
            medium_cutoff=self.medium_cutoff,
        )

    def load_detector_table(self) -> DetectorTable:
        """The configured rule table: a rules file if set, else the built-in one."""
        if self.rules_file:
            logger.info(f"Loading detector rules from {self.rules_file}")
            return DetectorTable.from_file(Path(self.rules_file))
        return default_detector_table()


@dataclass
class OutputSettings:
    """Presentation artifact defaults."""

    include_ascii_report: bool = True
    include_notebook: bool = True
    include_timeline: bool = True
    top_anomalies: int = 5

    def to_options(self) -> OutputOptions:
        return OutputOptions(**asdict(self))


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    json_output: bool = False
    use_colors: bool = True
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration container."""

    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    state_dir: str = DEFAULT_STATE_DIR

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Raises:
            InvalidConfigError: On unknown keys or an out-of-range scoring value
        """
        try:
            config = cls(
                analysis=AnalysisSettings(**data.get("analysis", {})),
                output=OutputSettings(**data.get("output", {})),
                logging=LoggingSettings(**data.get("logging", {})),
                state_dir=data.get("state_dir", DEFAULT_STATE_DIR),
            )
        except TypeError as e:
            raise InvalidConfigError([str(e)]) from e
        config.validate()
        return config

    def validate(self) -> None:
        errors = []
        for name in SCORING_FIELDS:
            value = getattr(self.analysis, name)
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                errors.append(f"analysis.{name} must be within [0, 1]")
        if not errors and self.analysis.medium_cutoff > self.analysis.high_cutoff:
            errors.append("analysis.medium_cutoff must not exceed analysis.high_cutoff")
        if self.output.top_anomalies < 0:
            errors.append("output.top_anomalies must not be negative")
        if errors:
            raise InvalidConfigError(errors)

    def save(self, path: Optional[Path] = None) -> None:
        """Save config to file."""
        if path is None:
            path = Path(self.state_dir) / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load config from file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfigError([f"{path} is not valid JSON: {e}"]) from e
        return cls.from_dict(data)


def get_config(
    config_path: Optional[Path] = None,
    state_dir: Optional[Path] = None,
) -> Config:
    """Get configuration, loading from file if available.

    Priority:
    1. Explicit config_path
    2. Config in state_dir
    3. Config in current directory
    4. Environment variables
    5. Defaults
    """
    paths_to_try = []

    if config_path:
        paths_to_try.append(config_path)
    if state_dir:
        paths_to_try.append(state_dir / "config.json")
    paths_to_try.extend(
        [
            Path(DEFAULT_STATE_DIR) / "config.json",
            Path("forensic-analyst.json"),
        ]
    )

    config = Config()
    for path in paths_to_try:
        if path.exists():
            config = Config.load(path)
            break

    _apply_env_overrides(config)
    config.validate()
    return config


def _split_codes(value: str) -> Optional[List[str]]:
    codes = [code.strip() for code in value.split(",") if code.strip()]
    return codes or None


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to config."""
    env_mappings: Dict[str, tuple] = {
        "FORENSIC_MCP_MIN_CONFIDENCE": ("analysis", "min_confidence", float),
        "FORENSIC_MCP_DETECTORS": ("analysis", "detectors", _split_codes),
        "FORENSIC_MCP_RULES_FILE": ("analysis", "rules_file", str),
        "FORENSIC_MCP_LOG_LEVEL": ("logging", "level", str),
        "FORENSIC_MCP_LOG_JSON": (
            "logging",
            "json_output",
            lambda x: x.lower() == "true",
        ),
        "FORENSIC_MCP_STATE_DIR": (None, "state_dir", str),
    }

    for env_var, (section, key, converter) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        try:
            converted = converter(value)  # type: ignore[operator]
        except (ValueError, TypeError):
            logger.warning(f"Ignoring invalid value for {env_var}: {value!r}")
            continue
        if section:
            setattr(getattr(config, section), key, converted)
        else:
            setattr(config, key, converted)
