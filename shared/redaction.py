"""Masking for secrets that could leak into config snapshots or log lines."""

from __future__ import annotations

import hashlib
import re
from typing import Any

__all__ = ["mask_secret", "sanitize_text"]

_DISCORD_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]{24,}\.[A-Za-z0-9_-]{6}\.[A-Za-z0-9_-]{27,}")
_SECRET_FIELD_RE = re.compile(
    r"(?P<prefix>(token|secret|key)\s*[=:]\s*)(?P<secret>[^\s,;]+)",
    re.IGNORECASE,
)
# Long mixed letter/digit runs look like bearer tokens even without dots.
_LONG_SECRET_RE = re.compile(
    r"(?<![A-Za-z0-9_-])(?=[A-Za-z0-9_-]*[A-Za-z])(?=[A-Za-z0-9_-]*\d)[A-Za-z0-9_-]{32,}(?![A-Za-z0-9_-])"
)


def mask_secret(text: str) -> str:
    """Replace ``text`` with a short stable marker so repeats stay correlatable."""

    digest = hashlib.sha1(text.encode("utf-8", "ignore")).hexdigest()
    return f"***{digest[:4]}"


def sanitize_text(value: Any) -> Any:
    if value is None:
        return value
    text = str(value)
    if not text:
        return text

    text = _DISCORD_TOKEN_RE.sub(lambda match: mask_secret(match.group(0)), text)
    text = _SECRET_FIELD_RE.sub(
        lambda match: match.group("prefix") + mask_secret(match.group("secret")), text
    )
    return _LONG_SECRET_RE.sub(lambda match: mask_secret(match.group(0)), text)
