"""Razorpay purchase endpoints: order creation, confirmation and webhooks."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status

from wanderlust_billing.api.dependencies import (
    AppSettings,
    BearerToken,
    Gateway,
    get_confirm_reconciler,
    get_order_service,
    get_webhook_reconciler,
    require_gateway_credentials,
)
from wanderlust_billing.api.schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    DiagnoseResponse,
    EnvResponse,
    ErrorResponse,
    GatewayProbe,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from wanderlust_billing.billing.services import OrderService, PaymentReconciler

router = APIRouter(prefix="/api/razorpay", tags=["payments"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_gateway_credentials)],
    responses=ERROR_RESPONSES,
)
async def create_order(
    payload: CreateOrderRequest,
    token: BearerToken,
    service: Annotated[OrderService, Depends(get_order_service)],
) -> CreateOrderResponse:
    """Create a gateway order for a level, applying redeemed tokens."""
    quote = await service.create_order(token, payload.level, payload.tokens_redeemed)
    return CreateOrderResponse(
        order_id=quote.order_id,
        amount=quote.amount,
        currency=quote.currency,
        gateway_key_id=quote.key_id,
        key_id=quote.key_id,
        name=quote.name,
        description=quote.description,
    )


@router.post(
    "/verify-payment",
    response_model=VerifyPaymentResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_gateway_credentials)],
    responses={**ERROR_RESPONSES, 403: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def verify_payment(
    payload: VerifyPaymentRequest,
    token: BearerToken,
    reconciler: Annotated[PaymentReconciler, Depends(get_confirm_reconciler)],
) -> VerifyPaymentResponse:
    """Confirm a payment the client just completed and grant the level."""
    result = await reconciler.confirm_payment(
        token,
        order_id=payload.order_id,
        payment_id=payload.payment_id,
        signature=payload.signature,
        level=payload.level,
    )
    owned = list(result.owned_levels)
    return VerifyPaymentResponse(
        credit_balance=result.credits,
        owned_entitlements=owned,
        credits=result.credits,
        owned_levels=owned,
        transaction_id=result.transaction_id,
        duplicate=result.is_duplicate,
    )


@router.post("/webhook", status_code=status.HTTP_200_OK)
async def webhook(
    request: Request,
    reconciler: Annotated[PaymentReconciler, Depends(get_webhook_reconciler)],
    x_razorpay_signature: Annotated[str | None, Header()] = None,
) -> dict:
    """Receive a gateway event. Only a bad signature is answered with 400."""
    raw_body = await request.body()
    ack = await reconciler.handle_webhook(raw_body, x_razorpay_signature)
    return ack.to_dict()


@router.get("/env", response_model=EnvResponse)
async def env_check(settings: AppSettings) -> EnvResponse:
    """Report which secrets are configured, never their values."""
    return EnvResponse(env=settings.presence(), ts=datetime.now(timezone.utc))


@router.get(
    "/diagnose",
    response_model=DiagnoseResponse,
    dependencies=[Depends(require_gateway_credentials)],
    responses={500: {"model": ErrorResponse}},
)
async def diagnose(gateway: Gateway) -> DiagnoseResponse:
    """Probe the gateway with the configured credentials."""
    probe = await gateway.ping()
    return DiagnoseResponse(
        ok=probe.ok,
        gateway=GatewayProbe(ok=probe.ok, status=probe.status, message=probe.message),
    )
