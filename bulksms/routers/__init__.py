from fastapi import APIRouter

from . import sms


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(sms.router)
    return router
