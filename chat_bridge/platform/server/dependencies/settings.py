from fastapi import Request

from chat_bridge.platform.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
