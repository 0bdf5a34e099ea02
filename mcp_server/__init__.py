"""
MCP Server for the Forensic Analyst.
Neural forensics for LLM transcripts using the DSMMD taxonomy.
"""

from .errors import handle_mcp_error
from .schemas import (
    AnalysisConfigInput,
    EvidenceContextInput,
    ForensicAnalysisInput,
    OutputConfigInput,
    ParseTranscriptInput,
    ScanTextInput,
    TranscriptInput,
    TranscriptSource,
    validate_input,
)
from .state import ForensicServerState, get_server_state, reset_server_state

__all__ = [
    # Errors
    "handle_mcp_error",
    # Schemas
    "TranscriptSource",
    "TranscriptInput",
    "AnalysisConfigInput",
    "EvidenceContextInput",
    "OutputConfigInput",
    "ForensicAnalysisInput",
    "ParseTranscriptInput",
    "ScanTextInput",
    "validate_input",
    # State
    "ForensicServerState",
    "get_server_state",
    "reset_server_state",
]
