from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from content_admin.services.slug_conversion import ConversionStatus

BulkStatus = Literal["success", "error"]


class PostOut(BaseModel):
    id: str
    slug: str
    decoded_slug: str
    needs_slug_decoding: bool
    title: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: str | None = None
    canonical_url: str | None = None
    default_canonical_url: str
    published_at: datetime | None = None


class PostPageOut(BaseModel):
    page: int
    per_page: int
    total_posts: int
    total_pages: int
    posts: list[PostOut] = Field(default_factory=list)


class PostSeoPatchRequest(BaseModel):
    seo_title: str | None = None
    seo_description: str | None = None
    seo_keywords: str | None = None
    canonical_url: str | None = None


class ItemErrorOut(BaseModel):
    id: str
    message: str


class SlugCandidateOut(BaseModel):
    id: str
    original_slug: str
    decoded_slug: str
    truncated: bool = False


class DuplicateGroupOut(BaseModel):
    decoded_slug: str
    ids: list[str]


class ExternalConflictOut(BaseModel):
    id: str
    decoded_slug: str
    conflicting_existing_slug: str
    existing_ids: list[str] = Field(default_factory=list)


class SlugConvertRequest(BaseModel):
    post_ids: list[str] = Field(default_factory=list)
    dry_run: bool = False


class SlugConvertOut(BaseModel):
    status: ConversionStatus
    message: str
    scanned: int
    selected: int | None = None
    candidates: list[SlugCandidateOut] = Field(default_factory=list)
    total: int = 0
    converted: int = 0
    skipped: int = 0
    errors: list[ItemErrorOut] = Field(default_factory=list)
    duplicates: list[DuplicateGroupOut] = Field(default_factory=list)
    conflicts: list[ExternalConflictOut] = Field(default_factory=list)


class CanonicalUrlBulkRequest(BaseModel):
    post_ids: list[str] = Field(default_factory=list)


class CanonicalUrlBulkOut(BaseModel):
    status: BulkStatus
    message: str
    total: int
    generated: int
    skipped: int
    errors: list[ItemErrorOut] = Field(default_factory=list)
