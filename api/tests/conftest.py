from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

import pytest

from content_admin.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryValidationError,
)
from content_admin.services.slug_migration import SlugRecord

# Tests never export spans.
os.environ.setdefault("CA_OTEL_ENABLED", "false")


class FakePostRepository:
    """In-memory blog_posts table that trims and enforces unique slugs like the real one."""

    def __init__(self, posts: list[dict[str, Any]], *, failing_ids: set[str] | None = None) -> None:
        now = datetime.now(timezone.utc)
        self.posts: dict[str, dict[str, Any]] = {}
        for post in posts:
            row = {
                "id": post["id"],
                "slug": post.get("slug"),
                "title": post.get("title"),
                "seo_title": post.get("seo_title"),
                "seo_description": post.get("seo_description"),
                "seo_keywords": post.get("seo_keywords"),
                "canonical_url": post.get("canonical_url"),
                "published_at": post.get("published_at", now),
            }
            self.posts[row["id"]] = row
        self.failing_ids = failing_ids or set()
        self.slug_writes: list[tuple[str, str]] = []
        self.canonical_writes: list[tuple[str, str]] = []
        self.fetch_calls: list[list[str] | None] = []

    async def fetch_post_slugs(self, post_ids: list[str] | None = None) -> list[SlugRecord]:
        self.fetch_calls.append(post_ids)
        return [
            SlugRecord(id=row["id"], slug=row["slug"])
            for row in self.posts.values()
            if post_ids is None or row["id"] in post_ids
        ]

    async def count_posts(self) -> int:
        return len(self.posts)

    async def list_posts(self, *, limit: int, offset: int) -> list[dict[str, Any]]:
        rows = [{**row, "slug": (row["slug"] or "").strip()} for row in self.posts.values()]
        return rows[offset : offset + limit]

    async def update_post_slug(self, post_id: str, slug: str) -> None:
        if post_id in self.failing_ids:
            raise RepositoryNotFoundError("post not found")
        slug = slug.strip()
        if not slug:
            raise RepositoryValidationError("slug must be a non-empty string")
        if any((row["slug"] or "").strip() == slug and row["id"] != post_id for row in self.posts.values()):
            raise RepositoryConflictError(f"slug already in use: {slug}")
        self.posts[post_id]["slug"] = slug
        self.slug_writes.append((post_id, slug))

    async def update_post_canonical_url(self, post_id: str, canonical_url: str) -> None:
        if post_id in self.failing_ids:
            raise RepositoryNotFoundError("post not found")
        self.posts[post_id]["canonical_url"] = canonical_url
        self.canonical_writes.append((post_id, canonical_url))

    async def update_post_seo(
        self,
        *,
        post_id: str,
        seo_title: str | None,
        seo_description: str | None,
        seo_keywords: str | None,
        canonical_url: str | None,
    ) -> dict[str, Any]:
        row = self.posts.get(post_id)
        if row is None:
            raise RepositoryNotFoundError("post not found")
        row["seo_title"] = seo_title or None
        row["seo_description"] = seo_description or None
        if seo_keywords:
            row["seo_keywords"] = seo_keywords
        if canonical_url:
            row["canonical_url"] = canonical_url
        return {**row, "slug": (row["slug"] or "").strip()}

    async def close(self) -> None:
        return None


@pytest.fixture
def make_repository():
    def factory(posts: list[dict[str, Any]], *, failing_ids: set[str] | None = None) -> FakePostRepository:
        return FakePostRepository(posts, failing_ids=failing_ids)

    return factory
