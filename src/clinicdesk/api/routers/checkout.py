"""
Checkout endpoints: copayment collection for dispensed visits.
"""

from fastapi import APIRouter, Depends, Request

from ...application.use_cases import CheckoutUseCase
from ..deps import get_checkout, require_session
from ..schemas.clinic import ReceivedAmountRequest
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/checkout", tags=["checkout"], dependencies=[Depends(require_session)])


def _summary(checkout: CheckoutUseCase) -> dict:
    item = checkout.current_item
    return {
        "item": item.to_dict() if item else None,
        "summary": item.summary(checkout.copayment) if item else None,
        "copayment": checkout.copayment,
        "received_amount": checkout.received_amount,
        "change_amount": checkout.change_amount,
    }


@router.get("", response_model=ApiResponse[dict])
async def load_items(request: Request, checkout: CheckoutUseCase = Depends(get_checkout)):
    items = await checkout.load_items()
    return ok(request, data={"pending_count": checkout.pending_count, "items": [i.to_dict() for i in items]})


@router.post("/{assignment_id}/select", response_model=ApiResponse[dict])
async def select_item(assignment_id: int, request: Request, checkout: CheckoutUseCase = Depends(get_checkout)):
    if not checkout.items:
        await checkout.load_items()
    checkout.select_item(assignment_id)
    return ok(request, data=_summary(checkout))


@router.put("/received", response_model=ApiResponse[dict])
async def set_received(
    payload: ReceivedAmountRequest, request: Request, checkout: CheckoutUseCase = Depends(get_checkout)
):
    checkout.set_received_amount(payload.amount)
    return ok(request, data=_summary(checkout))


@router.post("/complete", response_model=ApiResponse[dict])
async def complete_checkout(request: Request, checkout: CheckoutUseCase = Depends(get_checkout)):
    item = await checkout.complete_checkout()
    return ok(request, data=item.to_dict(), message="Checkout completed")
