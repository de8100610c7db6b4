from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote

DEFAULT_MAX_DECODE_ROUNDS = 10

# A "%" that does not start a two-digit hex escape makes the whole round invalid.
_MALFORMED_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DecodeResult:
    final_value: str
    changed: bool
    iterations: int
    truncated: bool


def decode_fixpoint(value: str, *, max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS) -> DecodeResult:
    """Percent-decode ``value`` repeatedly until it stops changing.

    Decoding is best effort: a round that fails (malformed escape or invalid
    UTF-8) ends the loop and the last good value is returned. When
    ``max_rounds`` changing rounds have run and one more would still change
    the value, the result is flagged ``truncated``.
    """
    current = value
    iterations = 0
    truncated = False

    for _ in range(max(0, max_rounds)):
        decoded = _decode_round(current)
        if decoded is None or decoded == current:
            break
        current = decoded
        iterations += 1
    else:
        peek = _decode_round(current)
        truncated = peek is not None and peek != current

    return DecodeResult(
        final_value=current,
        changed=current != value,
        iterations=iterations,
        truncated=truncated,
    )


def decode_slug(slug: str, *, max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS) -> str:
    return decode_fixpoint(slug, max_rounds=max_rounds).final_value


def needs_decoding(slug: str | None, *, max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS) -> bool:
    trimmed = (slug or "").strip()
    if not trimmed:
        return False
    return decode_slug(trimmed, max_rounds=max_rounds) != trimmed


def _decode_round(value: str) -> str | None:
    if "%" not in value:
        return value
    if _MALFORMED_ESCAPE_RE.search(value):
        logger.debug("slug decode stopped: malformed escape in %r", value)
        return None
    try:
        return unquote(value, encoding="utf-8", errors="strict")
    except UnicodeDecodeError:
        logger.debug("slug decode stopped: invalid utf-8 in %r", value)
        return None
