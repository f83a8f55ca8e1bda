import httpx

from .config import Settings, get_settings


def create_backend_client(settings: Settings | None = None, **kwargs) -> httpx.AsyncClient:
    settings = settings or get_settings()
    return httpx.AsyncClient(
        base_url=settings.backend_url,
        timeout=settings.backend_timeout,
        headers={"Content-Type": "application/json"},
        **kwargs,
    )
