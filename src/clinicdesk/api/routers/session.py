"""
Session negotiation endpoints.

Each call advances (or rewinds) the login state machine and returns the
resulting step; step-level failures come back on ``error`` with HTTP 200.
"""

from fastapi import APIRouter, Depends, Request

from ...application.use_cases import SessionNegotiationUseCase
from ..deps import get_session
from ..schemas.common import ApiResponse
from ..schemas.session import LoginRequest, SelectRequest, SessionStateView, describe_state
from ..utils.responses import ok

router = APIRouter(prefix="/session", tags=["session"])


@router.get("", response_model=ApiResponse[SessionStateView])
async def get_state(request: Request, session: SessionNegotiationUseCase = Depends(get_session)):
    return ok(request, data=describe_state(session.state))


@router.post("/login", response_model=ApiResponse[SessionStateView])
async def login(
    payload: LoginRequest,
    request: Request,
    session: SessionNegotiationUseCase = Depends(get_session),
):
    state = await session.authenticate(payload.user, payload.password)
    return ok(request, data=describe_state(state))


@router.post("/tenant", response_model=ApiResponse[SessionStateView])
async def select_tenant(
    payload: SelectRequest, request: Request, session: SessionNegotiationUseCase = Depends(get_session)
):
    return ok(request, data=describe_state(await session.select_tenant(payload.id)))


@router.post("/role", response_model=ApiResponse[SessionStateView])
async def select_role(
    payload: SelectRequest, request: Request, session: SessionNegotiationUseCase = Depends(get_session)
):
    return ok(request, data=describe_state(await session.select_role(payload.id)))


@router.post("/organization", response_model=ApiResponse[SessionStateView])
async def select_organization(
    payload: SelectRequest, request: Request, session: SessionNegotiationUseCase = Depends(get_session)
):
    return ok(request, data=describe_state(await session.select_organization(payload.id)))


@router.post("/warehouse", response_model=ApiResponse[SessionStateView])
async def select_warehouse(
    payload: SelectRequest, request: Request, session: SessionNegotiationUseCase = Depends(get_session)
):
    return ok(request, data=describe_state(await session.select_warehouse(payload.id)))


@router.post("/back", response_model=ApiResponse[SessionStateView])
async def go_back(request: Request, session: SessionNegotiationUseCase = Depends(get_session)):
    return ok(request, data=describe_state(session.go_back()))


@router.post("/switch", response_model=ApiResponse[SessionStateView])
async def switch_context(request: Request, session: SessionNegotiationUseCase = Depends(get_session)):
    return ok(request, data=describe_state(session.switch_context()))


@router.post("/logout", response_model=ApiResponse[SessionStateView])
async def logout(request: Request, session: SessionNegotiationUseCase = Depends(get_session)):
    return ok(request, data=describe_state(session.logout()), message="Logged out")
