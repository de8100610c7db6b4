from fastapi import APIRouter, Depends, HTTPException, status as http_status

from content_admin.core.config import Settings, get_settings
from content_admin.services.repository import RepositoryUnavailableError, get_repository

router = APIRouter()


@router.get("/")
async def root(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name}


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(repository=Depends(get_repository)) -> dict[str, str | int]:
    try:
        total_posts = await repository.count_posts()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {"status": "ready", "posts": total_posts}
