from fastapi import APIRouter

from content_admin.api.routes import health, posts

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(posts.router, prefix="/posts", tags=["seo"])
