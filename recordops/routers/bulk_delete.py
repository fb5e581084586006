from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from recordops.engine.orchestrator import BulkDeleteEngine
from recordops.exceptions import (
    ConditionValidationError,
    EngineBusyError,
    QueryFailedError,
)
from recordops.export import records_to_csv
from recordops.helpers import estimate_operation_cost
from recordops.models.conditions import Condition
from recordops.models.messages import (
    ConditionsRequest,
    EstimateResponse,
    ExecuteRequest,
    PreviewResponse,
    QuickDeleteRequest,
    StateResponse,
    StatsResponse,
    UndoResponse,
    ValidateResponse,
)

router = APIRouter(prefix="/app/api/bulk-delete", tags=["bulk-delete"])


def get_engine(request: Request) -> BulkDeleteEngine:
    return request.app.state.engine


def _conditions(body: ConditionsRequest) -> List[Condition]:
    try:
        return body.to_conditions()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _run(fn):
    """Map engine errors onto HTTP statuses."""
    try:
        return fn()
    except ConditionValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except EngineBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except QueryFailedError as e:
        body = {"detail": str(e)}
        if e.stats is not None:
            body["stats"] = e.stats.to_dict()
        return JSONResponse(status_code=502, content=body)


@router.post("/validate", response_model=ValidateResponse)
def http_validate(body: ConditionsRequest, engine: BulkDeleteEngine = Depends(get_engine)):
    try:
        err = engine.validate_conditions(body.to_conditions())
    except ValueError as e:
        err = str(e)
    return ValidateResponse(ok=err is None, error=err)


@router.post("/preview")
def http_preview(
    body: ConditionsRequest,
    fmt: str = Query(default="json", alias="format", pattern="^(json|csv)$"),
    engine: BulkDeleteEngine = Depends(get_engine),
):
    conditions = _conditions(body)
    result = _run(lambda: engine.preview_delete(body.collection, conditions))
    if isinstance(result, Response):
        return result
    if fmt == "csv":
        return Response(
            content=records_to_csv(result),
            media_type="text/csv; charset=utf-8",
            headers={
                "Content-Disposition": f'attachment; filename="{body.collection}_preview.csv"'
            },
        )
    return PreviewResponse.build(
        body.collection, result, engine.estimate_delete_time(len(result))
    )


@router.post("/execute")
def http_execute(body: ExecuteRequest, engine: BulkDeleteEngine = Depends(get_engine)):
    conditions = _conditions(body)
    opts = body.options.to_options(engine.defaults)
    result = _run(lambda: engine.execute_delete(body.collection, conditions, opts))
    if isinstance(result, Response):
        return result
    return StatsResponse.build(result, can_undo=engine.can_undo)


@router.post("/quick")
def http_quick(body: QuickDeleteRequest, engine: BulkDeleteEngine = Depends(get_engine)):
    def _go():
        try:
            return engine.quick_delete(body.collection, body.field, body.value, body.operator)
        except ValueError as e:
            # unknown operator surfaces from Condition construction
            if isinstance(e, ConditionValidationError):
                raise
            raise ConditionValidationError(str(e)) from e

    result = _run(_go)
    if isinstance(result, Response):
        return result
    return StatsResponse.build(result, can_undo=engine.can_undo)


@router.post("/undo", response_model=UndoResponse)
def http_undo(engine: BulkDeleteEngine = Depends(get_engine)):
    ok = _run(engine.undo_last_delete)
    return UndoResponse(ok=bool(ok), error=None if ok else engine.error)


@router.get("/estimate", response_model=EstimateResponse)
def http_estimate(
    item_count: int = Query(ge=0),
    batch_size: int = Query(default=500, ge=1),
    engine: BulkDeleteEngine = Depends(get_engine),
):
    return EstimateResponse(
        item_count=item_count,
        batch_size=batch_size,
        estimated_seconds=engine.estimate_delete_time(item_count, batch_size),
        cost=estimate_operation_cost(item_count, batch_size),
    )


@router.get("/state", response_model=StateResponse)
def http_state(engine: BulkDeleteEngine = Depends(get_engine)):
    snap = engine.undo_snapshot
    last = engine.last_stats
    return StateResponse(
        state=engine.state.value,
        is_deleting=engine.is_deleting,
        is_loading=engine.is_loading,
        can_undo=engine.can_undo,
        error=engine.error,
        last_stats=StatsResponse.build(last, can_undo=engine.can_undo) if last else None,
        undo_collection=snap.collection if snap else None,
        undo_records=snap.size if snap else 0,
    )
