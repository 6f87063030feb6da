"""
Pharmacy endpoints: the pending-dispense queue and the dispense saga.
"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Request

from ...application.use_cases import DispensePipelineUseCase
from ..deps import get_dispense, require_session
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/pharmacy", tags=["pharmacy"], dependencies=[Depends(require_session)])
logger = logging.getLogger("clinicdesk")


@router.get("/queue", response_model=ApiResponse[dict])
async def load_queue(request: Request, pipeline: DispensePipelineUseCase = Depends(get_dispense)):
    items = await pipeline.load_queue()
    return ok(
        request,
        data={"pending_count": pipeline.pending_count, "items": [i.to_dict() for i in items]},
    )


@router.post("/queue/{assignment_id}/start", response_model=ApiResponse[dict])
async def start_dispensing(
    assignment_id: int, request: Request, pipeline: DispensePipelineUseCase = Depends(get_dispense)
):
    item = await pipeline.start_dispensing(assignment_id)
    stock = {
        str(product_id): [asdict(s) for s in rows] for product_id, rows in pipeline.current_stock.items()
    }
    return ok(request, data={"item": item.to_dict(), "stock": stock})


@router.post("/queue/{assignment_id}/complete", response_model=ApiResponse[dict])
async def complete_dispensing(
    assignment_id: int, request: Request, pipeline: DispensePipelineUseCase = Depends(get_dispense)
):
    outcome = await pipeline.complete_dispensing(assignment_id)
    if outcome.warning:
        logger.warning("Dispense %s completed with warning: %s", assignment_id, outcome.warning)
    return ok(request, data=outcome.to_dict(), message=outcome.warning or "Dispensed")


@router.delete("/current", response_model=ApiResponse[None])
async def clear_current(request: Request, pipeline: DispensePipelineUseCase = Depends(get_dispense)):
    pipeline.clear_current()
    return ok(request)


@router.get("/stock", response_model=ApiResponse[list])
async def list_stock(request: Request, pipeline: DispensePipelineUseCase = Depends(get_dispense)):
    return ok(request, data=await pipeline.list_all_stock())


@router.get("/stock/{product_id}", response_model=ApiResponse[list])
async def product_stock(
    product_id: int, request: Request, pipeline: DispensePipelineUseCase = Depends(get_dispense)
):
    rows = await pipeline.get_product_stock(product_id)
    return ok(request, data=[asdict(r) for r in rows])


@router.get("/records", response_model=ApiResponse[list])
async def list_dispense_records(request: Request, pipeline: DispensePipelineUseCase = Depends(get_dispense)):
    records = await pipeline.list_dispense_records()
    return ok(request, data=[r.to_dict() for r in records])
