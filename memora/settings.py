"""
memora/settings.py
-------------------
Runtime configuration read from the environment (and .env via python-dotenv).

Import
------
    from memora.settings import get_settings

    settings = get_settings()
    settings.store_backend   # "supabase" | "memory"
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

import dotenv

dotenv.load_dotenv()

_STORE_BACKENDS = {"supabase", "memory"}


@dataclass(frozen=True)
class Settings:
    store_backend: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    openai_api_key: Optional[str] = None

    llm_model: str = "gpt-4o-mini"
    llm_timeout: float = 30.0
    llm_max_retries: int = 1

    batch_delay: float = 0.1
    conflict_retries: int = 3

    cors_origins: str = "*"
    port: int = 8000

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    backend = os.environ.get("MEMORA_STORE_BACKEND", "supabase").strip().lower()
    if backend not in _STORE_BACKENDS:
        raise RuntimeError(
            f"MEMORA_STORE_BACKEND must be one of {sorted(_STORE_BACKENDS)}, got {backend!r}"
        )
    return Settings(
        store_backend=backend,
        supabase_url=os.environ.get("SUPABASE_URL"),
        supabase_key=os.environ.get("SUPABASE_SERVICE_KEY"),
        openai_api_key=os.environ.get("OPENAI_API_KEY"),
        llm_model=os.environ.get("MEMORA_LLM_MODEL", "gpt-4o-mini"),
        llm_timeout=_env_float("MEMORA_LLM_TIMEOUT", 30.0),
        llm_max_retries=_env_int("MEMORA_LLM_MAX_RETRIES", 1),
        batch_delay=_env_float("MEMORA_BATCH_DELAY", 0.1),
        conflict_retries=_env_int("MEMORA_CONFLICT_RETRIES", 3),
        cors_origins=os.environ.get("CORS_ORIGINS", "*"),
        port=_env_int("PORT", 8000),
    )
