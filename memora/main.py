"""
memora/main.py
--------------
FastAPI application entrypoint.

Registers all routers and configures CORS and logging.

Run with:
    uvicorn memora.main:app --reload --port 8000

Swagger UI: http://localhost:8000/docs
ReDoc:      http://localhost:8000/redoc
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from memora.settings import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)

from memora.routers.admin_router import router as admin_router
from memora.routers.entries_router import router as entries_router
from memora.routers.query_router import router as query_router
from memora.routers.summaries_router import router as summaries_router

app = FastAPI(
    title="Memora Knowledge API",
    description=(
        "Members of a space post experiences; Memora distills them into "
        "topic-indexed summaries and answers questions with links back to the "
        "entries each answer came from."
    ),
    version="1.0.0",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
# Tighten allowed_origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(entries_router)     # POST /entries, POST /entries/batch, GET /entries/{space_id}
app.include_router(query_router)       # POST /query, POST /query/sources, GET /query/history/{space_id}
app.include_router(summaries_router)   # GET /summaries/{space_id}, GET /summaries/{space_id}/{summary_id}
app.include_router(admin_router)       # GET /admin/health


@app.get("/", tags=["root"])
def root():
    return {
        "service": "Memora Knowledge API",
        "docs": "/docs",
        "health": "/admin/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
