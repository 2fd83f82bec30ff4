"""FastAPI dependency injection for the shared state store.

Usage in route handlers::

    @router.get("/health")
    async def health(store: StateStoreDep) -> HealthResult:
        ...

Raises HTTP 503 if the store was not initialised (BOTSTATE_MONGO_URI unset).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from botstate.store.tiered import TieredStateStore


async def get_store(request: Request) -> TieredStateStore:
    """Return the store created during app lifespan."""
    store: TieredStateStore | None = request.app.state.store
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="State store not configured (BOTSTATE_MONGO_URI is unset).",
        )
    return store


StateStoreDep = Annotated[TieredStateStore, Depends(get_store)]
"""Annotated dependency: the connected, process-wide state store."""
