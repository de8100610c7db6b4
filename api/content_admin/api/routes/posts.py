import math

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status as http_status

from content_admin.core.config import Settings, get_settings
from content_admin.core.slugs import decode_slug
from content_admin.schemas.posts import (
    CanonicalUrlBulkOut,
    CanonicalUrlBulkRequest,
    DuplicateGroupOut,
    ExternalConflictOut,
    ItemErrorOut,
    PostOut,
    PostPageOut,
    PostSeoPatchRequest,
    SlugCandidateOut,
    SlugConvertOut,
    SlugConvertRequest,
)
from content_admin.services.batch import SelectionError
from content_admin.services.canonical import synthesize_canonical_url
from content_admin.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
    get_repository,
)
from content_admin.services.slug_conversion import (
    convert_post_slugs,
    describe_canonical_outcome,
    describe_conversion,
    generate_canonical_urls,
)

router = APIRouter()


@router.get("", response_model=PostPageOut)
async def list_posts(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=50),
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> PostPageOut:
    try:
        total_posts = await repository.count_posts()
        rows = await repository.list_posts(limit=per_page, offset=(page - 1) * per_page)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return PostPageOut(
        page=page,
        per_page=per_page,
        total_posts=total_posts,
        total_pages=math.ceil(total_posts / per_page),
        posts=[_post_out(row, settings) for row in rows if row["slug"]],
    )


@router.patch("/{post_id}/seo", response_model=PostOut)
async def patch_post_seo(
    post_id: str,
    payload: PostSeoPatchRequest,
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> PostOut:
    try:
        row = await repository.update_post_seo(
            post_id=post_id,
            seo_title=payload.seo_title,
            seo_description=payload.seo_description,
            seo_keywords=payload.seo_keywords,
            canonical_url=payload.canonical_url,
        )
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=http_status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _post_out(row, settings)


@router.post("/slugs/convert", response_model=SlugConvertOut)
async def convert_slugs(
    payload: SlugConvertRequest,
    response: Response,
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> SlugConvertOut:
    try:
        result = await convert_post_slugs(
            repository,
            post_ids=payload.post_ids,
            dry_run=payload.dry_run,
            max_rounds=settings.slug_decode_max_rounds,
        )
    except SelectionError as exc:
        raise HTTPException(status_code=http_status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    if result.status == "blocked":
        response.status_code = http_status.HTTP_409_CONFLICT

    outcome = result.outcome
    return SlugConvertOut(
        status=result.status,
        message=describe_conversion(result),
        scanned=result.scanned,
        selected=result.selected,
        candidates=[
            SlugCandidateOut(
                id=candidate.id,
                original_slug=candidate.original_slug,
                decoded_slug=candidate.decoded_slug,
                truncated=candidate.truncated,
            )
            for candidate in result.candidates
        ],
        total=outcome.total if outcome else len(result.candidates),
        converted=outcome.converted if outcome else 0,
        skipped=outcome.skipped if outcome else 0,
        errors=[ItemErrorOut(id=error.id, message=error.message) for error in outcome.item_errors] if outcome else [],
        duplicates=[
            DuplicateGroupOut(decoded_slug=group.decoded_slug, ids=list(group.ids))
            for group in result.report.internal_duplicates
        ],
        conflicts=[
            ExternalConflictOut(
                id=conflict.id,
                decoded_slug=conflict.decoded_slug,
                conflicting_existing_slug=conflict.conflicting_existing_slug,
                existing_ids=list(conflict.existing_ids),
            )
            for conflict in result.report.external_conflicts
        ],
    )


@router.post("/canonical-urls", response_model=CanonicalUrlBulkOut)
async def bulk_generate_canonical_urls(
    payload: CanonicalUrlBulkRequest,
    repository=Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> CanonicalUrlBulkOut:
    try:
        outcome = await generate_canonical_urls(
            repository,
            post_ids=payload.post_ids,
            base_url=settings.canonical_base_url,
            path_template=settings.canonical_path_template,
            max_rounds=settings.slug_decode_max_rounds,
        )
    except SelectionError as exc:
        raise HTTPException(status_code=http_status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return CanonicalUrlBulkOut(
        status="error" if outcome.item_errors and outcome.generated == 0 else "success",
        message=describe_canonical_outcome(outcome),
        total=outcome.total,
        generated=outcome.generated,
        skipped=outcome.skipped,
        errors=[ItemErrorOut(id=error.id, message=error.message) for error in outcome.item_errors],
    )


def _post_out(row: dict, settings: Settings) -> PostOut:
    slug = row["slug"]
    decoded = decode_slug(slug, max_rounds=settings.slug_decode_max_rounds)
    return PostOut(
        **row,
        decoded_slug=decoded,
        needs_slug_decoding=decoded != slug,
        default_canonical_url=synthesize_canonical_url(
            settings.canonical_base_url,
            settings.canonical_path_template,
            slug,
            max_rounds=settings.slug_decode_max_rounds,
        ),
    )
