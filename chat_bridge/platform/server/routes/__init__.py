from fastapi import APIRouter

from chat_bridge.platform.server.routes.base import base_router

root = APIRouter()
root.include_router(base_router)
