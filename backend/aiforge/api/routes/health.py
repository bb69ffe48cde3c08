"""Unauthenticated liveness endpoint."""

from fastapi import APIRouter

from aiforge.platform.errors import success_response

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    return success_response({"status": "ok"})
