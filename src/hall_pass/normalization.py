"""Utilities to normalize scanned or typed input."""

from __future__ import annotations

from typing import Optional


def normalize_scan_value(value: Optional[str]) -> Optional[str]:
    """Trim whitespace left by keyboard-wedge scanners; blank input becomes ``None``.

    Identifiers and location tokens are otherwise opaque and compared as-is.
    """
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None
