from fastapi import Request

from app.core.exceptions import AppError
from app.gateway.gateway import GeminiGateway


def get_gateway(request: Request) -> GeminiGateway:
    """Return the process-wide gateway built during startup."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise AppError("Gateway not initialized")
    return gateway
