from fastapi import APIRouter

from pushfanout.api import send, subscriptions

api_router = APIRouter()
api_router.include_router(subscriptions.router, tags=["subscriptions"])
api_router.include_router(send.router, tags=["send"])
