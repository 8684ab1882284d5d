"""
Maps raw failures to error kinds.

Rules are checked in a fixed order and the first match wins. Messages often
contain several matching fragments ("429 ... 404 page"); the order below
decides:

    404 > 403 > rate limit > auth > network > json/parse > download > unknown
"""

import re
from typing import Optional, Pattern, Tuple

from likes_archiver.models import ErrorKind


_RULES: Tuple[Tuple[ErrorKind, Pattern], ...] = (
    (ErrorKind.MEDIA_404, re.compile(r"404|Not Found", re.IGNORECASE)),
    (ErrorKind.MEDIA_403, re.compile(r"403|Forbidden", re.IGNORECASE)),
    (ErrorKind.RATE_LIMIT, re.compile(
        r"429|Too Many Requests|Rate limit", re.IGNORECASE)),
    (ErrorKind.AUTH_ERROR, re.compile(
        r"Authentication failed|Unauthorized|Login failed|Invalid credentials",
        re.IGNORECASE)),
    (ErrorKind.NETWORK_ERROR, re.compile(
        r"ENOTFOUND|ECONNREFUSED|ETIMEDOUT|ECONNRESET"
        r"|Name or service not known|nodename nor servname|getaddrinfo failed"
        r"|Connection refused|Connection reset|timed out"
        r"|ConnectError|ConnectTimeout|ReadTimeout|WriteTimeout|PoolTimeout|TimeoutError",
        re.IGNORECASE)),
    (ErrorKind.JSON_PARSE_ERROR, re.compile(r"json|parse", re.IGNORECASE)),
    (ErrorKind.MEDIA_DOWNLOAD_FAILED, re.compile(
        r"download|Failed to get", re.IGNORECASE)),
)


def describe_error(error: Optional[BaseException], output: str = "") -> str:
    """
    Build the text the classifier inspects.

    Args:
        error: Exception (or None when only tool output is available)
        output: Auxiliary text such as captured stdout/stderr

    Returns:
        Exception type name and message followed by the output
    """
    parts = []
    if error is not None:
        message = str(error)
        parts.append(f"{type(error).__name__}: {message}" if message else type(error).__name__)
    if output:
        parts.append(output)
    return " ".join(parts)


def classify(error: Optional[BaseException], output: str = "") -> ErrorKind:
    """
    Classify a failure.

    Args:
        error: Exception raised by the failed operation
        output: Extra text to inspect alongside the exception message

    Returns:
        First matching ErrorKind, or UNKNOWN_ERROR
    """
    return classify_text(describe_error(error, output))


def classify_text(text: str) -> ErrorKind:
    """Classify free text with the same ordered rules as ``classify``."""
    for kind, pattern in _RULES:
        if pattern.search(text):
            return kind
    return ErrorKind.UNKNOWN_ERROR

