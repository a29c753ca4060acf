# This project was developed with assistance from AI tools.
"""Liveness endpoint."""

from fastapi import APIRouter

from ..services.storage import get_storage_backend

router = APIRouter()


@router.get("/")
async def health() -> dict[str, str]:
    """Report liveness and which storage backend is serving state."""
    return {"status": "ok", "storage_backend": get_storage_backend().kind}
