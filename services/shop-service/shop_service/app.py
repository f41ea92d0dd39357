from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import entities, schemas
from .auth import AuthService, TokenClaims, UserService
from .config import Settings
from .context import RequestContext
from .database import init_db
from .dispatch import NotificationDispatcher
from .errors import (
    AlreadyExists,
    NotFound,
    ServiceError,
    Unauthorized,
    ValidationError,
    VendorError,
)
from .factory import ProviderFactory
from .providers.base import NotificationProvider, PaymentProvider
from .repository import UserRepository
from .workflow import OrderWorkflow

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AlreadyExists, status.HTTP_409_CONFLICT),
    (VendorError, status.HTTP_502_BAD_GATEWAY),
)

bearer_scheme = HTTPBearer(auto_error=False)


def to_http_error(exc: ServiceError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


def get_context(request: Request) -> RequestContext:
    return request.state.context


def get_workflow(request: Request) -> OrderWorkflow:
    return request.app.state.workflow


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return auth.authenticate(credentials.credentials)
    except Unauthorized as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_app(
    settings: Optional[Settings] = None,
    *,
    users: Optional[UserRepository] = None,
    payment: Optional[PaymentProvider] = None,
    notification: Optional[NotificationProvider] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    if users is None:
        init_db()
        users = UserRepository()
    factory = ProviderFactory(settings)
    if payment is None or notification is None:
        factory.validate()
    payment = payment or factory.create_payment_provider()
    notification = notification or factory.create_notification_provider()
    dispatcher = dispatcher or NotificationDispatcher(max_workers=settings.notification.workers)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        dispatcher.shutdown(wait=True)
        payment.close()
        notification.close()

    app = FastAPI(
        title="Shop Service",
        version="0.1.0",
        description="User accounts and order processing against payment and notification vendors.",
        lifespan=lifespan,
    )
    app.state.workflow = OrderWorkflow(users, payment, notification, dispatcher)
    app.state.auth = AuthService(users, settings.jwt)
    app.state.user_service = UserService(users)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.context = RequestContext(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/healthz", response_model=schemas.HealthResponse, tags=["system"])
    async def healthz() -> schemas.HealthResponse:
        return schemas.HealthResponse(status="ok")

    @app.post(
        "/api/v1/auth/register",
        response_model=schemas.UserOut,
        status_code=status.HTTP_201_CREATED,
        tags=["authentication"],
    )
    def register(
        payload: schemas.RegisterRequest,
        auth: AuthService = Depends(get_auth_service),
    ) -> schemas.UserOut:
        try:
            user = auth.register(payload.username, payload.email, payload.password)
        except ServiceError as exc:
            logger.warning("Registration failed username=%s: %s", payload.username, exc)
            raise to_http_error(exc)
        return schemas.UserOut.model_validate(user)

    @app.post("/api/v1/auth/login", response_model=schemas.LoginResponse, tags=["authentication"])
    def login(
        payload: schemas.LoginRequest,
        auth: AuthService = Depends(get_auth_service),
    ) -> schemas.LoginResponse:
        try:
            result = auth.login(payload.username, payload.password)
        except ServiceError as exc:
            logger.warning("Login failed username=%s: %s", payload.username, exc)
            raise to_http_error(exc)
        return schemas.LoginResponse(token=result.token, user=schemas.UserOut.model_validate(result.user))

    @app.get("/api/v1/user/profile", response_model=schemas.UserOut, tags=["users"])
    def get_profile(
        claims: TokenClaims = Depends(require_user),
        users: UserService = Depends(get_user_service),
    ) -> schemas.UserOut:
        try:
            user = users.get_profile(claims.user_id)
        except ServiceError as exc:
            raise to_http_error(exc)
        return schemas.UserOut.model_validate(user)

    @app.post("/orders", response_model=schemas.OrderResponse, tags=["orders"])
    def create_order(
        payload: schemas.CreateOrderRequest,
        claims: TokenClaims = Depends(require_user),
        ctx: RequestContext = Depends(get_context),
        workflow: OrderWorkflow = Depends(get_workflow),
    ) -> schemas.OrderResponse:
        try:
            order = workflow.process_order(
                entities.CreateOrderRequest(
                    order_id=payload.order_id,
                    user_id=claims.user_id,
                    amount=payload.amount,
                    currency=payload.currency,
                    user_email=payload.user_email or "",
                ),
                ctx.with_user(claims.user_id),
            )
        except ServiceError as exc:
            raise to_http_error(exc)
        return schemas.OrderResponse.model_validate(order)

    @app.get(
        "/orders/payment/{payment_id}/status",
        response_model=schemas.PaymentStatusResponse,
        tags=["orders"],
    )
    def get_payment_status(
        payment_id: str,
        claims: TokenClaims = Depends(require_user),
        ctx: RequestContext = Depends(get_context),
        workflow: OrderWorkflow = Depends(get_workflow),
    ) -> schemas.PaymentStatusResponse:
        try:
            payment_status = workflow.get_payment_status(payment_id, ctx.with_user(claims.user_id))
        except ServiceError as exc:
            raise to_http_error(exc)
        return schemas.PaymentStatusResponse.model_validate(payment_status)

    @app.post("/orders/refund", response_model=schemas.RefundResponse, tags=["orders"])
    def refund_order(
        payload: schemas.RefundOrderRequest,
        claims: TokenClaims = Depends(require_user),
        ctx: RequestContext = Depends(get_context),
        workflow: OrderWorkflow = Depends(get_workflow),
    ) -> schemas.RefundResponse:
        try:
            refund = workflow.refund_order(
                entities.RefundOrderRequest(
                    payment_id=payload.payment_id,
                    user_id=claims.user_id,
                    reason=payload.reason or "",
                ),
                ctx.with_user(claims.user_id),
            )
        except ServiceError as exc:
            raise to_http_error(exc)
        return schemas.RefundResponse.model_validate(refund)

    @app.post(
        "/orders/payment-intent",
        response_model=schemas.PaymentIntentResponse,
        tags=["orders"],
    )
    def create_payment_intent(
        payload: schemas.PaymentIntentRequest,
        claims: TokenClaims = Depends(require_user),
        ctx: RequestContext = Depends(get_context),
        workflow: OrderWorkflow = Depends(get_workflow),
    ) -> schemas.PaymentIntentResponse:
        try:
            intent = workflow.create_payment_intent(
                entities.PaymentIntentRequest(
                    amount=payload.amount,
                    currency=payload.currency,
                    customer_id=str(claims.user_id),
                    description=payload.description,
                ),
                ctx.with_user(claims.user_id),
            )
        except ServiceError as exc:
            raise to_http_error(exc)
        return schemas.PaymentIntentResponse.model_validate(intent)

    return app
