"""Application access-code check."""

from typing import Annotated

from fastapi import APIRouter, Depends

from wanderlust_billing.api.dependencies import get_access_gate
from wanderlust_billing.api.schemas import AccessVerifyRequest, ErrorResponse, OkResponse
from wanderlust_billing.billing.services import AccessGate

router = APIRouter(prefix="/api/access", tags=["access"])


@router.post(
    "/verify",
    response_model=OkResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def verify_access(
    payload: AccessVerifyRequest,
    gate: Annotated[AccessGate, Depends(get_access_gate)],
) -> OkResponse:
    gate.verify(payload.code)
    return OkResponse()
