from __future__ import annotations

from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from content_admin.core.config import get_settings
from content_admin.services.slug_migration import SlugRecord


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryConflictError(RepositoryError):
    """Raised when a write would violate a uniqueness constraint."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def fetch_post_slugs(self, post_ids: list[str] | None = None) -> list[SlugRecord]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            """
            select
              id::text as id,
              slug
            from blog_posts
            where ($1::text[] is null or id::text = any($1::text[]))
            order by id asc
            """,
            post_ids,
        )
        return [SlugRecord(id=row["id"], slug=row["slug"]) for row in rows]

    async def count_posts(self) -> int:
        pool = await self._get_pool()
        count = await pool.fetchval("select count(*) from blog_posts")
        return int(count or 0)

    async def list_posts(self, *, limit: int, offset: int) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        rows = await pool.fetch(
            """
            select
              id::text as id,
              slug,
              title,
              seo_title,
              seo_description,
              seo_keywords,
              canonical_url,
              published_at
            from blog_posts
            order by published_at desc nulls last, id asc
            limit $1
            offset $2
            """,
            limit,
            offset,
        )
        return [self._post_row_to_dict(row) for row in rows]

    async def update_post_slug(self, post_id: str, slug: str) -> None:
        normalized_slug = self._coerce_text(slug)
        if not normalized_slug:
            raise RepositoryValidationError("slug must be a non-empty string")

        pool = await self._get_pool()
        try:
            updated_id = await pool.fetchval(
                """
                update blog_posts
                set slug = $2, updated_at = now()
                where id::text = $1
                returning id::text
                """,
                post_id,
                normalized_slug,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"slug already in use: {normalized_slug}") from exc
        if updated_id is None:
            raise RepositoryNotFoundError("post not found")

    async def update_post_canonical_url(self, post_id: str, canonical_url: str) -> None:
        pool = await self._get_pool()
        try:
            updated_id = await pool.fetchval(
                """
                update blog_posts
                set canonical_url = $2, updated_at = now()
                where id::text = $1
                returning id::text
                """,
                post_id,
                canonical_url,
            )
        except pg_exc.UndefinedColumnError as exc:
            raise RepositoryValidationError(
                "canonical_url column is missing; add it to blog_posts before generating canonical URLs",
            ) from exc
        if updated_id is None:
            raise RepositoryNotFoundError("post not found")

    async def update_post_seo(
        self,
        *,
        post_id: str,
        seo_title: str | None,
        seo_description: str | None,
        seo_keywords: str | None,
        canonical_url: str | None,
    ) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                update blog_posts
                set
                  seo_title = $2,
                  seo_description = $3,
                  seo_keywords = coalesce($4, seo_keywords),
                  canonical_url = coalesce($5, canonical_url),
                  updated_at = now()
                where id::text = $1
                returning
                  id::text as id,
                  slug,
                  title,
                  seo_title,
                  seo_description,
                  seo_keywords,
                  canonical_url,
                  published_at
                """,
                post_id,
                self._coerce_text(seo_title),
                self._coerce_text(seo_description),
                self._coerce_text(seo_keywords),
                self._coerce_text(canonical_url),
            )
        except pg_exc.UndefinedColumnError as exc:
            raise RepositoryValidationError(f"blog_posts is missing an SEO column: {exc}") from exc
        if not row:
            raise RepositoryNotFoundError("post not found")
        return self._post_row_to_dict(row)

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("CA_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _post_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "slug": (row["slug"] or "").strip(),
            "title": row["title"],
            "seo_title": row["seo_title"],
            "seo_description": row["seo_description"],
            "seo_keywords": row["seo_keywords"],
            "canonical_url": row["canonical_url"],
            "published_at": row["published_at"],
        }

    @staticmethod
    def _coerce_text(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
    )
