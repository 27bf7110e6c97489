"""Admin dashboard endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header

from wanderlust_billing.api.dependencies import get_admin_gate, get_metrics_service
from wanderlust_billing.api.schemas import ErrorResponse, MetricsResponse
from wanderlust_billing.billing.services import AdminMetricsService, AdminTokenGate

router = APIRouter(prefix="/api/admin", tags=["admin"])


def admin_token(
    x_admin_token: Annotated[str | None, Header()] = None,
    x_sync_token: Annotated[str | None, Header()] = None,
    sync_token: Annotated[str | None, Header()] = None,
) -> str | None:
    """First admin token header present, in order of preference."""
    return x_admin_token or x_sync_token or sync_token


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def metrics(
    token: Annotated[str | None, Depends(admin_token)],
    gate: Annotated[AdminTokenGate, Depends(get_admin_gate)],
    service: Annotated[AdminMetricsService, Depends(get_metrics_service)],
) -> MetricsResponse:
    """Revenue and engagement over the last seven days."""
    gate.verify(token)
    report = await service.collect()
    by_level = {level: float(amount) for level, amount in report.revenue_by_level.items()}
    return MetricsResponse(
        total_revenue=float(report.total_revenue),
        active_accounts=report.active_accounts,
        active_students=report.active_accounts,
        new_signups=report.new_signups,
        revenue_by_entitlement=by_level,
        revenue_by_level=dict(by_level),
    )
