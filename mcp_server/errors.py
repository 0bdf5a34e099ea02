"""
Error handling for MCP server.
Translates forensic errors into MCP-friendly responses.
"""

import asyncio
import logging
from functools import wraps
from typing import Any, Callable, Dict, cast

from forensics.errors import ForensicAnalysisError

logger = logging.getLogger(__name__)


def _internal_error(e: Exception) -> Dict[str, Any]:
    logger.exception(f"Unhandled error in MCP tool: {e}")
    return {
        "error": {
            "code": "INTERNAL_ERROR",
            "message": str(e),
            "details": {"type": type(e).__name__},
        }
    }


def handle_mcp_error(func: Callable) -> Callable:
    """Decorator to convert exceptions to MCP-friendly responses.

    Usage:
        @handle_mcp_error
        async def my_tool(...):
            ...
    """

    @wraps(func)
    async def async_wrapper(*args, **kwargs) -> Dict[str, Any]:
        try:
            return cast(Dict[str, Any], await func(*args, **kwargs))
        except ForensicAnalysisError as e:
            return e.to_mcp_error()
        except Exception as e:
            return _internal_error(e)

    @wraps(func)
    def sync_wrapper(*args, **kwargs) -> Dict[str, Any]:
        try:
            return cast(Dict[str, Any], func(*args, **kwargs))
        except ForensicAnalysisError as e:
            return e.to_mcp_error()
        except Exception as e:
            return _internal_error(e)

    if asyncio.iscoroutinefunction(func):
        return async_wrapper
    return sync_wrapper
