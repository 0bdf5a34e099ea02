"""
forensic-analyst - MCP server for neural forensics of LLM transcripts.
"""

__version__ = "1.0.0"
