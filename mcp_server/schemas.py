"""
Pydantic schemas for MCP tool inputs.
Provides type validation and documentation for all MCP tools.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from forensics.errors import InvalidConfigError
from forensics.interfaces import EvidenceGrade, TranscriptFormat

ModelT = TypeVar("ModelT", bound=BaseModel)


class TranscriptSource(str, Enum):
    """Where the transcript text comes from."""

    INLINE = "inline"
    TEXT = "text"
    FILE_REFERENCE = "file_reference"


class TranscriptInput(BaseModel):
    """Transcript payload of a forensic analysis request."""

    source: TranscriptSource = Field(
        default=TranscriptSource.INLINE,
        description="'inline' (or 'text') content, or a 'file_reference' path",
    )
    content: Optional[str] = Field(default=None, description="Inline transcript text")
    format: TranscriptFormat = Field(
        default=TranscriptFormat.AUTO,
        description="'json', 'structured', 'plain' or 'auto'",
    )
    file_reference: Optional[str] = Field(
        default=None, description="Path to a UTF-8 transcript file"
    )


class AnalysisConfigInput(BaseModel):
    """Detection options."""

    detectors: Optional[List[str]] = Field(
        default=None, description="DSMMD codes to check (default: all)"
    )
    min_confidence: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Drop anomalies below this confidence (default: 0.5)",
    )


class EvidenceContextInput(BaseModel):
    """Labelling data; has no effect on detection."""

    specimen_name: Optional[str] = Field(
        default=None, description="Specimen label, e.g. 'Sediment/Juno'"
    )
    model_family: Optional[str] = Field(
        default=None, description="Model family, e.g. 'GPT-4o'"
    )
    is_production: Optional[bool] = Field(
        default=None, description="Production rather than experimental context"
    )
    prior_evidence: Optional[EvidenceGrade] = Field(
        default=None, description="Existing evidence grade for this specimen"
    )


class OutputConfigInput(BaseModel):
    """Which presentation artifacts to render."""

    include_notebook: Optional[bool] = Field(default=None)
    include_ascii_report: Optional[bool] = Field(default=None)
    include_timeline: Optional[bool] = Field(default=None)


class ForensicAnalysisInput(BaseModel):
    """Input for a full forensic analysis."""

    transcript: TranscriptInput
    analysis_config: AnalysisConfigInput = Field(default_factory=AnalysisConfigInput)
    evidence_context: EvidenceContextInput = Field(
        default_factory=EvidenceContextInput
    )
    output_config: OutputConfigInput = Field(default_factory=OutputConfigInput)


class ParseTranscriptInput(BaseModel):
    """Input for parsing a transcript without scanning it."""

    content: str = Field(..., description="Transcript text")
    format: TranscriptFormat = Field(default=TranscriptFormat.AUTO)


class ScanTextInput(BaseModel):
    """Input for scanning a single assistant utterance."""

    text: str = Field(..., description="Assistant output to scan")
    detectors: Optional[List[str]] = Field(default=None)
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)


def validate_input(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Validate tool arguments, raising InvalidConfigError on failure."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigError(
            [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
        ) from e
