"""Operator entry point for slug conversion and canonical URL generation."""

from __future__ import annotations

import argparse
import asyncio
import sys

from content_admin.core.config import get_settings
from content_admin.core.telemetry import configure_logging
from content_admin.services.batch import SelectionError
from content_admin.services.canonical import CanonicalUrlOutcome
from content_admin.services.repository import RepositoryError, get_repository
from content_admin.services.slug_conversion import (
    SlugConversionResult,
    convert_post_slugs,
    describe_canonical_outcome,
    describe_conversion,
    generate_canonical_urls,
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INPUT_ERROR = 2


def render_conversion_report(result: SlugConversionResult) -> str:
    lines = [describe_conversion(result)]

    if result.status == "blocked":
        for group in result.report.internal_duplicates:
            lines.append(f"duplicate slug {group.decoded_slug!r}: {len(group.ids)} posts (ids: {', '.join(group.ids)})")
        for conflict in result.report.external_conflicts:
            lines.append(
                f"[{conflict.id}] decoded slug {conflict.decoded_slug!r} already used by "
                f"{', '.join(conflict.existing_ids)}"
            )
    elif result.status == "dry_run":
        for candidate in result.candidates:
            lines.append(f"[{candidate.id}] {candidate.original_slug} -> {candidate.decoded_slug}")

    if result.outcome is not None:
        for error in result.outcome.item_errors:
            lines.append(f"[{error.id}] {error.message}")

    return "\n".join(lines)


def render_canonical_report(outcome: CanonicalUrlOutcome) -> str:
    lines = [describe_canonical_outcome(outcome)]
    lines.extend(f"[{error.id}] {error.message}" for error in outcome.item_errors)
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    repository = get_repository()
    try:
        if args.command == "convert":
            result = await convert_post_slugs(
                repository,
                post_ids=args.post_ids,
                dry_run=args.dry_run,
                max_rounds=settings.slug_decode_max_rounds,
            )
            print(render_conversion_report(result))
            if result.status in {"blocked", "completed_with_errors"}:
                return EXIT_FAILED
            return EXIT_OK

        outcome = await generate_canonical_urls(
            repository,
            post_ids=args.post_ids,
            base_url=args.base_url or settings.canonical_base_url,
            path_template=settings.canonical_path_template,
            max_rounds=settings.slug_decode_max_rounds,
        )
        print(render_canonical_report(outcome))
        return EXIT_FAILED if outcome.skipped else EXIT_OK
    finally:
        await repository.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Normalize percent-encoded post slugs and canonical URLs.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Decode percent-encoded slugs when no collision would result")
    convert.add_argument(
        "--post-id",
        dest="post_ids",
        action="append",
        default=[],
        help="Restrict conversion to this post id (repeatable; default: all posts)",
    )
    convert.add_argument("--dry-run", action="store_true", help="Validate and list changes without writing")

    canonical = subparsers.add_parser("canonical", help="Write canonical URLs derived from decoded slugs")
    canonical.add_argument(
        "--post-id",
        dest="post_ids",
        action="append",
        required=True,
        help="Post id to update (repeatable)",
    )
    canonical.add_argument("--base-url", default=None, help="Override CA_CANONICAL_BASE_URL")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        return asyncio.run(_run(args))
    except SelectionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except RepositoryError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
