"""Content sanitization helpers (core domain)."""

from __future__ import annotations

import re

MAX_POST_CHARS = 280

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_message(text: object, max_chars: int = MAX_POST_CHARS) -> str:
    """Strip control characters, trim whitespace and clip to ``max_chars``.

    The result is trimmed again after clipping so that applying the function
    twice never changes the output.
    """

    if not isinstance(text, str):
        return ""
    cleaned = _CONTROL_CHARS.sub("", text).strip()
    return cleaned[:max_chars].rstrip()
