import secrets
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, EmailStr

from app.auth.jwt import create_access_token
from app.core.config import settings
from app.worker.celery_app import celery_app

router = APIRouter(prefix="/dev", tags=["dev"])


def _require_dev_key(x_dev_api_key: Annotated[str | None, Header()] = None) -> None:
    if not settings.dev_routes_enabled:
        raise HTTPException(status_code=404, detail="Not Found")
    if settings.dev_api_key and not secrets.compare_digest(
        x_dev_api_key or "", settings.dev_api_key
    ):
        raise HTTPException(status_code=401, detail="invalid dev api key")


DevKey = Annotated[None, Depends(_require_dev_key)]


class DevTokenIn(BaseModel):
    external_id: str
    email: EmailStr | None = None
    name: str | None = None
    ttl_seconds: int | None = None


@router.post("/tokens")
def dev_mint_token(payload: DevTokenIn, _: DevKey):
    token = create_access_token(
        payload.external_id,
        email=payload.email,
        name=payload.name,
        ttl_seconds=payload.ttl_seconds,
    )
    return {"access_token": token, "token_type": "bearer"}


class ReconcileIn(BaseModel):
    event_id: UUID | None = None


@router.post("/reconcile")
def dev_enqueue_reconcile(payload: ReconcileIn, _: DevKey):
    # enqueue task without importing tasks module
    async_result = celery_app.send_task(
        "reconcile_registration_counters",
        args=[str(payload.event_id) if payload.event_id else None],
    )
    return {"status": "queued", "task_id": async_result.id}
