"""
Locate Controllers (API Routes)
================================

FastAPI routes for the locate tracking dashboard.

Controllers are thin - they delegate to the engine's services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from config import Bucket
from core import ValidationException
from locates.application import LocateFilters, LocateTrackerEngine
from locates.application.dto import (
    ActionResponse,
    BulkDeleteRequest,
    DashboardResponse,
    DashboardSummary,
    LocateResponse,
    MarkCalledRequest,
    RefreshResponse,
    SelectAllRequest,
    SelectionResponse,
    TagDialogOpenRequest,
    TagDialogResponse,
    TagFormUpdateRequest,
    ToggleSelectionRequest,
)
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/locate-tracker", tags=["Locate Tracking"])


# ========== Example payloads for Swagger ==========

ACTION_RESPONSE_EXAMPLE = {
    "status": "partial",
    "message": "1 deleted, 1 failed",
    "succeeded": 1,
    "failed": 1,
    "failed_ids": ["wo-2"],
    "errors": {"wo-2": "Locates API: Work order not found"}
}


# ========== Dependencies ==========

def get_engine(request: Request) -> LocateTrackerEngine:
    """Get the engine wired up at startup."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Locate tracker not initialized"
        )
    return engine


def _selection_response(engine: LocateTrackerEngine) -> SelectionResponse:
    return SelectionResponse(selection=engine.selection.as_dict())


# ========== Dashboard ==========

@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Get the three-bucket locate dashboard",
    description="""
    Locates split into Needs Call, In Progress and Completed, each with
    a countdown rendered at the current clock tick.

    **Query Parameters** (applied to Needs Call only):
    - `search`: substring of work order, customer, street, city or tech
    - `untagged_only`: hide locates already manually tagged
    - `call_type`: `ALL`, `STANDARD` or `EMERGENCY`
    - `created`: `all`, `today`, `this_week`, `this_month`
    """
)
async def get_dashboard(
    search: Optional[str] = Query(None, description="Search term"),
    untagged_only: bool = Query(False, description="Only untagged locates"),
    call_type: Optional[str] = Query(None, description="ALL, STANDARD or EMERGENCY"),
    created: Optional[str] = Query(None, description="Created-date window"),
    engine: LocateTrackerEngine = Depends(get_engine)
):
    filters = LocateFilters.build(search, untagged_only, call_type, created)
    snapshot = engine.dashboard.snapshot(filters)

    def _views(bucket: str):
        selected = engine.selection.selected(bucket)
        return [
            LocateResponse.from_view(view, selected=view.record.id in selected)
            for view in snapshot.get(bucket)
        ]

    return DashboardResponse(
        now=snapshot.now,
        last_refreshed_at=engine.dashboard.last_refreshed_at,
        needs_call=_views(Bucket.NEEDS_CALL),
        in_progress=_views(Bucket.IN_PROGRESS),
        completed=_views(Bucket.COMPLETED),
        selection=engine.selection.as_dict(),
        summary=DashboardSummary(**snapshot.summary()),
    )


@router.post("/refresh", response_model=RefreshResponse, summary="Re-fetch all locates")
async def refresh(engine: LocateTrackerEngine = Depends(get_engine)):
    count = await engine.dashboard.refresh()
    return RefreshResponse(record_count=count, refreshed_at=engine.dashboard.last_refreshed_at)


@router.post("/sync", response_model=RefreshResponse, summary="Sync upstream dashboard, then refresh")
async def sync(engine: LocateTrackerEngine = Depends(get_engine)):
    count = await engine.dashboard.sync()
    return RefreshResponse(record_count=count, refreshed_at=engine.dashboard.last_refreshed_at)


# ========== Selection ==========

@router.get("/selection", response_model=SelectionResponse, summary="Selected ids per bucket")
async def get_selection(engine: LocateTrackerEngine = Depends(get_engine)):
    return _selection_response(engine)


@router.post("/selection/{bucket}/toggle", response_model=SelectionResponse)
async def toggle_selection(
    bucket: str,
    body: ToggleSelectionRequest,
    engine: LocateTrackerEngine = Depends(get_engine)
):
    if body.id not in engine.dashboard.classify().ids(bucket):
        raise ValidationException(
            f"Locate '{body.id}' is not in bucket '{bucket}'",
            {"bucket": bucket, "id": body.id}
        )
    engine.selection.toggle(bucket, body.id)
    return _selection_response(engine)


@router.post("/selection/{bucket}/select-all", response_model=SelectionResponse)
async def select_all(
    bucket: str,
    body: Optional[SelectAllRequest] = None,
    engine: LocateTrackerEngine = Depends(get_engine)
):
    live_ids = engine.dashboard.classify().ids(bucket)
    if body is not None and body.ids is not None:
        live = set(live_ids)
        ids = [record_id for record_id in body.ids if record_id in live]
    else:
        ids = live_ids
    engine.selection.select_all(bucket, ids)
    return _selection_response(engine)


@router.post("/selection/{bucket}/clear", response_model=SelectionResponse)
async def clear_selection(bucket: str, engine: LocateTrackerEngine = Depends(get_engine)):
    engine.selection.clear(bucket)
    return _selection_response(engine)


# ========== Actions ==========

@router.post(
    "/work-orders/{work_order_id}/call",
    response_model=ActionResponse,
    summary="Mark one locate as called"
)
async def mark_called(
    work_order_id: str,
    body: Optional[MarkCalledRequest] = None,
    engine: LocateTrackerEngine = Depends(get_engine)
):
    engine.dashboard.require(work_order_id)
    outcome = await engine.coordinator.mark_called(
        work_order_id, body.call_type if body else None
    )
    return ActionResponse.from_outcome(outcome)


@router.post(
    "/selection/{bucket}/call",
    response_model=ActionResponse,
    summary="Mark every selected locate as called"
)
async def bulk_mark_called(
    bucket: str,
    body: Optional[MarkCalledRequest] = None,
    engine: LocateTrackerEngine = Depends(get_engine)
):
    outcome = await engine.coordinator.bulk_mark_called(bucket, body.call_type if body else None)
    return ActionResponse.from_outcome(outcome)


@router.post(
    "/selection/{bucket}/delete",
    response_model=ActionResponse,
    summary="Delete every selected work order",
    responses={
        200: {"content": {"application/json": {"example": ACTION_RESPONSE_EXAMPLE}}},
        422: {"description": "Nothing selected or not confirmed"}
    }
)
async def bulk_delete(
    bucket: str,
    body: BulkDeleteRequest,
    engine: LocateTrackerEngine = Depends(get_engine)
):
    outcome = await engine.coordinator.bulk_delete(bucket, confirmed=body.confirmed)
    return ActionResponse.from_outcome(outcome)


# ========== Tagging ==========

@router.get("/tagging", response_model=TagDialogResponse, summary="Tagging dialog state")
async def get_tagging(engine: LocateTrackerEngine = Depends(get_engine)):
    return TagDialogResponse(**engine.tagging.state())


@router.post("/tagging/open", response_model=TagDialogResponse, summary="Open a tagging dialog")
async def open_tagging(
    body: TagDialogOpenRequest,
    engine: LocateTrackerEngine = Depends(get_engine)
):
    if body.mode == "single":
        engine.tagging.open_single(engine.dashboard.require(body.id))
    else:
        engine.tagging.open_bulk(engine.selected_records(body.bucket))
    return TagDialogResponse(**engine.tagging.state())


@router.patch("/tagging/form", response_model=TagDialogResponse, summary="Edit the tagging form")
async def update_tagging_form(
    body: TagFormUpdateRequest,
    engine: LocateTrackerEngine = Depends(get_engine)
):
    engine.tagging.update(name=body.name, email=body.email, tags=body.tags)
    return TagDialogResponse(**engine.tagging.state())


@router.post("/tagging/submit", response_model=ActionResponse, summary="Submit the tagging form")
async def submit_tagging(engine: LocateTrackerEngine = Depends(get_engine)):
    outcome = await engine.tagging.submit()
    return ActionResponse.from_outcome(outcome)


@router.post("/tagging/cancel", response_model=TagDialogResponse, summary="Close the tagging dialog")
async def cancel_tagging(engine: LocateTrackerEngine = Depends(get_engine)):
    engine.tagging.cancel()
    return TagDialogResponse(**engine.tagging.state())
