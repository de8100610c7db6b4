from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Literal, Protocol

from opentelemetry import trace

from content_admin.core.slugs import DEFAULT_MAX_DECODE_ROUNDS
from content_admin.services.batch import ItemWriter, SelectionError, dedupe_ids, record_item_error
from content_admin.services.canonical import CanonicalUrlOutcome, apply_canonical_urls
from content_admin.services.repository import RepositoryError
from content_admin.services.slug_migration import (
    Candidate,
    CollisionReport,
    MigrationOutcome,
    SlugRecord,
    apply_migration,
    detect_collisions,
    select_candidates,
)

ConversionStatus = Literal["nothing_to_convert", "blocked", "dry_run", "completed", "completed_with_errors"]

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class PostSlugStore(Protocol):
    async def fetch_post_slugs(self, post_ids: list[str] | None = None) -> list[SlugRecord]: ...

    async def update_post_slug(self, post_id: str, slug: str) -> None: ...

    async def update_post_canonical_url(self, post_id: str, canonical_url: str) -> None: ...


@dataclass(slots=True)
class SlugConversionResult:
    status: ConversionStatus
    scanned: int
    selected: int | None
    candidates: list[Candidate] = field(default_factory=list)
    report: CollisionReport = field(default_factory=CollisionReport)
    outcome: MigrationOutcome | None = None


def item_writer(update: Callable[[str, str], Awaitable[None]]) -> ItemWriter:
    """Adapt a raising repository update into a writer that reports failures as text."""

    async def write(item_id: str, value: str) -> str | None:
        try:
            await update(item_id, value)
        except RepositoryError as exc:
            return str(exc) or exc.__class__.__name__
        return None

    return write


async def convert_post_slugs(
    repository: PostSlugStore,
    *,
    post_ids: Iterable[str] | None = None,
    dry_run: bool = False,
    max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS,
) -> SlugConversionResult:
    selected_ids = dedupe_ids(post_ids)
    filter_ids = set(selected_ids) if selected_ids else None

    with tracer.start_as_current_span("slugs.convert") as span:
        span.set_attribute("slugs.selected", len(selected_ids))
        span.set_attribute("slugs.dry_run", dry_run)

        # The stable set needs every slug in the table, selected or not.
        records = await repository.fetch_post_slugs()
        span.set_attribute("slugs.scanned", len(records))

        if filter_ids is not None and not any(record.id in filter_ids for record in records):
            raise SelectionError("none of the selected posts exist; refresh the list and try again")

        result = SlugConversionResult(
            status="nothing_to_convert",
            scanned=len(records),
            selected=len(selected_ids) if filter_ids is not None else None,
        )
        result.candidates = select_candidates(records, filter_ids, max_rounds=max_rounds)
        span.set_attribute("slugs.candidates", len(result.candidates))
        if not result.candidates:
            logger.info("slug conversion: nothing to convert scanned=%s", len(records))
            return result

        result.report = detect_collisions(result.candidates, records)
        if not result.report.is_clear:
            result.status = "blocked"
            logger.warning(
                "slug conversion blocked: duplicates=%s conflicts=%s candidates=%s",
                len(result.report.internal_duplicates),
                len(result.report.external_conflicts),
                len(result.candidates),
            )
            return result

        if dry_run:
            result.status = "dry_run"
            logger.info("slug conversion dry run: candidates=%s", len(result.candidates))
            return result

        with tracer.start_as_current_span("slugs.apply"):
            result.outcome = await apply_migration(result.candidates, item_writer(repository.update_post_slug))

        result.status = "completed_with_errors" if result.outcome.skipped else "completed"
        span.set_attribute("slugs.converted", result.outcome.converted)
        span.set_attribute("slugs.skipped", result.outcome.skipped)
        logger.info(
            "slug conversion finished: converted=%s skipped=%s total=%s",
            result.outcome.converted,
            result.outcome.skipped,
            result.outcome.total,
        )
        return result


async def generate_canonical_urls(
    repository: PostSlugStore,
    *,
    post_ids: Iterable[str] | None,
    base_url: str,
    path_template: str,
    max_rounds: int = DEFAULT_MAX_DECODE_ROUNDS,
) -> CanonicalUrlOutcome:
    selected_ids = dedupe_ids(post_ids)
    if not selected_ids:
        raise SelectionError("no posts selected")

    with tracer.start_as_current_span("canonical_urls.generate") as span:
        span.set_attribute("canonical_urls.selected", len(selected_ids))
        records = await repository.fetch_post_slugs(selected_ids)
        if not records:
            raise SelectionError("none of the selected posts exist; refresh the list and try again")

        outcome = await apply_canonical_urls(
            records,
            item_writer(repository.update_post_canonical_url),
            base_url=base_url,
            path_template=path_template,
            max_rounds=max_rounds,
        )
        found_ids = {record.id for record in records}
        for missing_id in (post_id for post_id in selected_ids if post_id not in found_ids):
            outcome.total += 1
            outcome.skipped += 1
            record_item_error(outcome.item_errors, missing_id, "post not found")
        span.set_attribute("canonical_urls.generated", outcome.generated)
        logger.info(
            "canonical url generation finished: generated=%s skipped=%s total=%s",
            outcome.generated,
            outcome.skipped,
            outcome.total,
        )
        return outcome


def describe_conversion(result: SlugConversionResult) -> str:
    if result.status == "nothing_to_convert":
        if result.selected is not None:
            return "none of the selected posts need slug conversion"
        return "no slugs need conversion"
    if result.status == "blocked":
        return (
            f"conversion blocked: {len(result.report.internal_duplicates)} duplicate group(s), "
            f"{len(result.report.external_conflicts)} conflict(s) with existing slugs; nothing was changed"
        )
    if result.status == "dry_run":
        return f"dry run: {len(result.candidates)} slug(s) would be converted; no collisions found"

    outcome = result.outcome or MigrationOutcome(total=0)
    scope = "selected" if result.selected is not None else "all"
    return (
        f"done ({scope}): {outcome.converted} of {outcome.total} converted, "
        f"{outcome.skipped} skipped, {len(outcome.item_errors)} error(s) reported"
    )


def describe_canonical_outcome(outcome: CanonicalUrlOutcome) -> str:
    return (
        f"done: {outcome.generated} of {outcome.total} canonical URL(s) generated, "
        f"{outcome.skipped} skipped, {len(outcome.item_errors)} error(s) reported"
    )
