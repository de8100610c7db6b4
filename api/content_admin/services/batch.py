from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

MAX_REPORTED_ERRORS = 50
MAX_ERROR_MESSAGE_CHARS = 300

# Writers return None on success or a human-readable failure message.
ItemWriter = Callable[[str, str], Awaitable[str | None]]


class SelectionError(ValueError):
    """Raised when a bulk operation is given nothing usable to work on."""


@dataclass(slots=True, frozen=True)
class ItemError:
    id: str
    message: str


def record_item_error(errors: list[ItemError], item_id: str, message: str) -> None:
    if len(errors) >= MAX_REPORTED_ERRORS:
        return
    errors.append(ItemError(id=item_id, message=truncate_message(message)))


def truncate_message(message: str, *, limit: int = MAX_ERROR_MESSAGE_CHARS) -> str:
    text = " ".join(message.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def dedupe_ids(raw_ids: Iterable[str] | None) -> list[str]:
    if not raw_ids:
        return []
    seen: dict[str, None] = {}
    for raw in raw_ids:
        stripped = str(raw).strip()
        if stripped:
            seen.setdefault(stripped, None)
    return list(seen)
