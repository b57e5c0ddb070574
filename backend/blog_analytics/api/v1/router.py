from fastapi import APIRouter

from blog_analytics.api.v1 import analytics, snippets

api_router = APIRouter()
api_router.include_router(analytics.router, tags=["analytics"])
api_router.include_router(snippets.router, tags=["snippets"])
