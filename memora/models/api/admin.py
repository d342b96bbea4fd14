"""Pydantic models for the /admin router."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str             # "ok" | "degraded"
    store_backend: str
    store: bool
    openai: bool
    detail: Optional[str] = None
