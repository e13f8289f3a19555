"""Application lifespan for the gateway apps."""

from __future__ import annotations

__all__ = ["client_lifespan"]

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI

from mcpd_bridge.backend.client import BackendClient


def client_lifespan(
    client: BackendClient, owned: bool
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Lifespan that closes the daemon client on shutdown if the app owns it."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            if owned:
                await client.aclose()

    return lifespan
