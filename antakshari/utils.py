"""
Antakshari Round Shuffler - Shared Utilities

Common helpers used across the route modules.
"""

from typing import Any

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from antakshari.errors import ShufflerError


def sanitize_filename(name: str) -> str:
    """
    Sanitize a string for use as a local filename.

    Removes or replaces characters that are problematic on most file systems.
    """
    replacements = {
        "/": "_",
        "\\": "_",
        ":": "-",
        "*": "",
        "?": "",
        '"': "",
        "<": "",
        ">": "",
        "|": "",
    }
    result = name
    for old, new in replacements.items():
        result = result.replace(old, new)

    # Strip leading/trailing whitespace and dots
    result = result.strip(" .")

    return result or "unknown"


def api_response(
    data: Any = None,
    message: str = "",
    status_code: int = 200,
    **extra: Any,
) -> JSONResponse:
    """Wrap a payload in the ``{success, message, data}`` envelope."""
    content = {
        "success": status_code < 400,
        "message": message,
        "data": data,
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def http_error(err: ShufflerError) -> HTTPException:
    """Translate a domain error into the matching HTTPException."""
    return HTTPException(status_code=err.status_code, detail=err.message)
