"""Utility functions shared by receivers."""

import posixpath
from urllib.parse import urlsplit, urlunsplit


def join_url_path(base: str, additional_path: str, logger) -> str:
    """
    Append a path to a base URL, keeping its scheme, host and query.
    Returns ``base`` unchanged if it cannot be parsed.
    """
    try:
        parts = urlsplit(base)
    except ValueError as e:
        logger.debug(f"Failed to parse URL while joining path, url={base}, path={additional_path}: {e}")
        return base
    path = posixpath.join(parts.path or "/", additional_path.lstrip("/"))
    return urlunsplit(parts._replace(path=path))


def truncate(text: str, max_len: int) -> str:
    """Cut ``text`` to ``max_len`` characters, marking the cut with an ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"
