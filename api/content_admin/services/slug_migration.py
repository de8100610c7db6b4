from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from content_admin.core.slugs import DEFAULT_MAX_DECODE_ROUNDS, decode_fixpoint
from content_admin.services.batch import ItemError, ItemWriter, record_item_error

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SlugRecord:
    id: str
    slug: str | None


@dataclass(slots=True, frozen=True)
class Candidate:
    id: str
    original_slug: str
    decoded_slug: str
    truncated: bool = False


@dataclass(slots=True, frozen=True)
class DuplicateGroup:
    decoded_slug: str
    ids: list[str]


@dataclass(slots=True, frozen=True)
class ExternalConflict:
    id: str
    decoded_slug: str
    conflicting_existing_slug: str
    existing_ids: list[str]


@dataclass(slots=True)
class CollisionReport:
    internal_duplicates: list[DuplicateGroup] = field(default_factory=list)
    external_conflicts: list[ExternalConflict] = field(default_factory=list)

    @property
    def is_clear(self) -> bool:
        return not self.internal_duplicates and not self.external_conflicts


@dataclass(slots=True)
class MigrationOutcome:
    total: int
    converted: int = 0
    skipped: int = 0
    item_errors: list[ItemError] = field(default_factory=list)


def select_candidates(
    records: Sequence[SlugRecord],
    filter_ids: Collection[str] | None = None,
    *,
    max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS,
) -> list[Candidate]:
    """Return records whose slug changes when fully percent-decoded.

    ``filter_ids=None`` considers every record. Output keeps input order.
    """
    wanted = set(filter_ids) if filter_ids is not None else None
    candidates: list[Candidate] = []

    for record in records:
        if wanted is not None and record.id not in wanted:
            continue
        original = _trimmed(record.slug)
        if not original:
            continue

        result = decode_fixpoint(original, max_rounds=max_rounds)
        # The store trims on write, so compare and write the trimmed form.
        decoded = result.final_value.strip()
        if not decoded:
            logger.debug("slug decodes to whitespace only id=%s slug=%r; skipping", record.id, original)
            continue
        if decoded == original:
            continue
        if result.truncated:
            logger.warning(
                "slug decode hit round limit id=%s rounds=%s; using partially decoded value",
                record.id,
                result.iterations,
            )
        candidates.append(
            Candidate(
                id=record.id,
                original_slug=original,
                decoded_slug=decoded,
                truncated=result.truncated,
            )
        )

    return candidates


def detect_collisions(candidates: Sequence[Candidate], all_records: Sequence[SlugRecord]) -> CollisionReport:
    groups: dict[str, list[str]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.decoded_slug, []).append(candidate.id)

    internal_duplicates = [
        DuplicateGroup(decoded_slug=decoded_slug, ids=ids)
        for decoded_slug, ids in groups.items()
        if len(ids) > 1
    ]

    candidate_ids = {candidate.id for candidate in candidates}
    stable_slugs: dict[str, list[str]] = {}
    for record in all_records:
        if record.id in candidate_ids:
            continue
        slug = _trimmed(record.slug)
        if slug:
            stable_slugs.setdefault(slug, []).append(record.id)

    external_conflicts = [
        ExternalConflict(
            id=candidate.id,
            decoded_slug=candidate.decoded_slug,
            conflicting_existing_slug=candidate.decoded_slug,
            existing_ids=list(stable_slugs[candidate.decoded_slug]),
        )
        for candidate in candidates
        if candidate.decoded_slug in stable_slugs
    ]

    return CollisionReport(internal_duplicates=internal_duplicates, external_conflicts=external_conflicts)


async def apply_migration(candidates: Sequence[Candidate], write_slug: ItemWriter) -> MigrationOutcome:
    """Write each candidate's decoded slug in order.

    The caller must have obtained a clear ``CollisionReport`` for exactly these
    candidates. Failures are recorded per item; earlier writes are kept.
    """
    outcome = MigrationOutcome(total=len(candidates))

    for candidate in candidates:
        error = await write_slug(candidate.id, candidate.decoded_slug)
        if error is None:
            outcome.converted += 1
            continue
        outcome.skipped += 1
        logger.warning("slug update failed id=%s slug=%r: %s", candidate.id, candidate.original_slug, error)
        record_item_error(
            outcome.item_errors,
            candidate.id,
            f"update failed ({candidate.original_slug}): {error}",
        )

    return outcome


def _trimmed(value: str | None) -> str:
    return (value or "").strip()
