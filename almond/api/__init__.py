from fastapi import APIRouter

from . import auth, categories

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(categories.router)

__all__ = ["api_router"]
