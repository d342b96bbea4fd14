"""
/entries router
---------------
Getting contributions into a space.

POST /entries                       — Save one entry and run it through the pipeline
POST /entries/batch                 — Save + process up to 50 entries sequentially (background)
GET  /entries/batch/status/{id}     — Poll a batch
GET  /entries/{space_id}            — List raw entries, newest first

A single submission is processed inline: the response already carries the
summary it landed in. Batches return 202 immediately because they run
strictly one entry at a time with a pause between model calls.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from memora.models.api.entries import (
    BatchEntryRequest,
    BatchEntryResponse,
    BatchEntryStatusResponse,
    BatchItemStatus,
    EntryListResponse,
    EntryResponse,
    EntrySubmitRequest,
    EntrySubmitResponse,
)
from memora.models.domain.entries import EntryCreate
from memora.routers.deps import get_entry_processor, store_dependency
from memora.services.entry_processor import EntryProcessor
from memora.stores.base import KnowledgeStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/entries", tags=["entries"])

# Batch status lives in process memory and is lost on restart
_batches: Dict[str, Dict[str, Any]] = {}


@router.post("", response_model=EntrySubmitResponse)
def submit_entry(
    req: EntrySubmitRequest,
    processor: EntryProcessor = Depends(get_entry_processor),
) -> EntrySubmitResponse:
    """
    Save an entry and fold it into the space's knowledge.

    success=False means the knowledge update failed (or the entry could not
    be saved); the error field says why. Low-confidence entries succeed with
    summary_id=None.
    """
    result = processor.submit(EntryCreate(**req.model_dump()))
    return EntrySubmitResponse(
        success=result.success,
        entry_id=result.entry_id,
        summary_id=result.summary_id,
        topics_extracted=result.topics_extracted,
        error=result.error,
    )


# ── Batch ────────────────────────────────────────────────────────────────────

def _run_batch(batch_id: str, processor: EntryProcessor, items: List[EntryCreate]) -> None:
    """Background task: process every item in order, then record the outcomes."""
    results = processor.process_batch(items)

    for i, result in enumerate(results):
        _batches[batch_id]["items"][i].update({
            "status": "complete" if result.success else "failed",
            "entry_id": result.entry_id,
            "summary_id": result.summary_id,
            "topics_extracted": result.topics_extracted,
            "detail": result.error,
        })
    _finalise_batch(batch_id)


def _finalise_batch(batch_id: str) -> None:
    """Set overall batch status based on item outcomes."""
    items = _batches[batch_id]["items"]
    failed = sum(1 for it in items if it["status"] == "failed")
    completed = sum(1 for it in items if it["status"] == "complete")

    if failed == len(items):
        _batches[batch_id]["status"] = "failed"
    elif failed > 0:
        _batches[batch_id]["status"] = "partial_failure"
    else:
        _batches[batch_id]["status"] = "complete"

    _batches[batch_id]["completed"] = completed
    _batches[batch_id]["failed"] = failed
    logger.info("Batch %s finalised — %d/%d complete, %d failed",
                batch_id, completed, len(items), failed)


@router.post("/batch", response_model=BatchEntryResponse, status_code=202)
def submit_batch(
    req: BatchEntryRequest,
    background_tasks: BackgroundTasks,
    processor: EntryProcessor = Depends(get_entry_processor),
) -> BatchEntryResponse:
    """
    Submit several entries for the same space.

    Returns 202 immediately with a batch_id. Poll GET /entries/batch/status/{batch_id}.
    """
    batch_id = str(uuid.uuid4())
    entries = [
        EntryCreate(space_id=req.space_id, **item.model_dump())
        for item in req.items
    ]

    items = [
        {
            "index": i,
            "status": "pending",
            "entry_id": None,
            "summary_id": None,
            "topics_extracted": [],
            "detail": None,
        }
        for i in range(len(entries))
    ]
    _batches[batch_id] = {
        "status": "running",
        "total": len(entries),
        "completed": 0,
        "failed": 0,
        "items": items,
    }

    background_tasks.add_task(_run_batch, batch_id, processor, entries)

    return BatchEntryResponse(
        batch_id=batch_id,
        total=len(entries),
        status="running",
        items=[BatchItemStatus(**it) for it in items],
    )


@router.get("/batch/status/{batch_id}", response_model=BatchEntryStatusResponse)
def batch_status(batch_id: str) -> BatchEntryStatusResponse:
    batch = _batches.get(batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Batch '{batch_id}' not found.")

    return BatchEntryStatusResponse(
        batch_id=batch_id,
        total=batch["total"],
        completed=batch["completed"],
        failed=batch["failed"],
        status=batch["status"],
        items=[BatchItemStatus(**it) for it in batch["items"]],
    )


# ── List ─────────────────────────────────────────────────────────────────────

@router.get("/{space_id}", response_model=EntryListResponse)
def list_entries(
    space_id: str,
    store: KnowledgeStore = Depends(store_dependency),
) -> EntryListResponse:
    try:
        entries = store.list_entries(space_id)
    except Exception as e:
        logger.exception("Listing entries for %s failed", space_id)
        raise HTTPException(status_code=500, detail=str(e))

    return EntryListResponse(
        space_id=space_id,
        entries=[
            EntryResponse(
                entry_id=e.entry_id,
                space_id=e.space_id,
                content=e.content,
                source_type=e.source_type.value,
                contributor=e.contributor,
                metadata=e.metadata.model_dump(exclude_none=True),
                created_at=e.created_at,
            )
            for e in entries
        ],
    )
