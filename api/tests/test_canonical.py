from __future__ import annotations

import asyncio

from content_admin.services.canonical import apply_canonical_urls, synthesize_canonical_url
from content_admin.services.slug_migration import SlugRecord


def test_synthesize_canonical_url_uses_decoded_slug() -> None:
    url = synthesize_canonical_url("https://example.com", "post/{slug}", "%ED%98%B8%ED%85%94")

    assert url == "https://example.com/post/호텔"


def test_synthesize_canonical_url_joins_with_single_slash() -> None:
    url = synthesize_canonical_url("https://allstay.com/", "/alltrip/post/{slug}", "seoul-hotels")

    assert url == "https://allstay.com/alltrip/post/seoul-hotels"


def test_synthesize_canonical_url_with_empty_slug_ends_at_prefix() -> None:
    assert synthesize_canonical_url("https://example.com", "post/{slug}", "  ") == "https://example.com/post/"


def test_apply_canonical_urls_skips_empty_slugs_and_reports_write_failures() -> None:
    records = [
        SlugRecord(id="1", slug="%ED%98%B8%ED%85%94"),
        SlugRecord(id="2", slug=""),
        SlugRecord(id="3", slug="broken"),
        SlugRecord(id="4", slug="seoul"),
    ]
    writes: list[tuple[str, str]] = []

    async def write_canonical_url(post_id: str, url: str) -> str | None:
        if post_id == "3":
            return "canonical_url column is missing"
        writes.append((post_id, url))
        return None

    outcome = asyncio.run(
        apply_canonical_urls(
            records,
            write_canonical_url,
            base_url="https://example.com",
            path_template="post/{slug}",
        )
    )

    assert writes == [("1", "https://example.com/post/호텔"), ("4", "https://example.com/post/seoul")]
    assert outcome.total == 4
    assert outcome.generated == 2
    assert outcome.skipped == 2
    assert [error.id for error in outcome.item_errors] == ["2", "3"]
    assert "slug is empty" in outcome.item_errors[0].message
    assert "canonical_url column is missing" in outcome.item_errors[1].message
