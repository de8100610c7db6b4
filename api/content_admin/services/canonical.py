from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from content_admin.core.slugs import DEFAULT_MAX_DECODE_ROUNDS, decode_slug
from content_admin.services.batch import ItemError, ItemWriter, record_item_error
from content_admin.services.slug_migration import SlugRecord

SLUG_PLACEHOLDER = "{slug}"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CanonicalUrlOutcome:
    total: int
    generated: int = 0
    skipped: int = 0
    item_errors: list[ItemError] = field(default_factory=list)


def synthesize_canonical_url(
    base_url: str,
    path_template: str,
    slug: str | None,
    *,
    max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS,
) -> str:
    """Build ``{base_url}/{path_template}`` with the decoded slug substituted."""
    decoded = decode_slug((slug or "").strip(), max_rounds=max_rounds)
    path = path_template.replace(SLUG_PLACEHOLDER, decoded).lstrip("/")
    return f"{base_url.rstrip('/')}/{path}"


async def apply_canonical_urls(
    records: Sequence[SlugRecord],
    write_canonical_url: ItemWriter,
    *,
    base_url: str,
    path_template: str,
    max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS,
) -> CanonicalUrlOutcome:
    outcome = CanonicalUrlOutcome(total=len(records))

    for record in records:
        slug = (record.slug or "").strip()
        if not slug or not decode_slug(slug, max_rounds=max_rounds).strip():
            outcome.skipped += 1
            record_item_error(outcome.item_errors, record.id, "slug is empty; cannot build a canonical URL")
            continue

        canonical_url = synthesize_canonical_url(base_url, path_template, slug, max_rounds=max_rounds)
        error = await write_canonical_url(record.id, canonical_url)
        if error is None:
            outcome.generated += 1
            continue
        outcome.skipped += 1
        logger.warning("canonical url update failed id=%s: %s", record.id, error)
        record_item_error(outcome.item_errors, record.id, f"save failed: {error}")

    return outcome
