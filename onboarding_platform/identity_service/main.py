"""
Identity Service - registration, login and password reset for the onboarding platform
"""
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
import logging

from fastapi import FastAPI, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import PasswordHasher, SessionTokenIssuer
from .config import Settings, get_settings, require_signing_key
from .db import init_db, make_engine, make_session_factory
from .delivery import ConsoleResetDelivery, ResetDelivery
from .exceptions import (
    EmailTaken,
    IdentityError,
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFound,
    StoreUnavailable,
)
from .reset_tokens import ResetTokenService
from .schemas import (
    AcceptedResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
)
from .service import IdentityService
from .store import AccountStore
from .utils.event_logger import configure_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    EmailTaken: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidCredentials: status.HTTP_401_UNAUTHORIZED,
    InvalidOrExpiredToken: status.HTTP_400_BAD_REQUEST,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 404, 503)}


def build_identity_service(settings: Settings, delivery: Optional[ResetDelivery] = None) -> IdentityService:
    """
    Wire the identity service from configuration.

    Raises:
        ConfigurationError: If the session signing key is missing
    """
    signing_key = require_signing_key(settings)

    engine = make_engine(settings.DATABASE_URL)
    init_db(engine)
    session_factory = make_session_factory(engine)

    store = AccountStore(session_factory)
    hasher = PasswordHasher(rounds=settings.PASSWORD_HASH_ROUNDS)
    return IdentityService(
        store=store,
        hasher=hasher,
        session_tokens=SessionTokenIssuer(
            signing_key,
            algorithm=settings.JWT_ALGORITHM,
            ttl=timedelta(hours=settings.SESSION_TOKEN_TTL_HOURS),
        ),
        reset_tokens=ResetTokenService(
            store,
            hasher,
            ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
        ),
        delivery=delivery or ConsoleResetDelivery(settings.RESET_URL_BASE),
        event_sessions=session_factory,
    )


def create_app(settings: Optional[Settings] = None, delivery: Optional[ResetDelivery] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the identity service on startup; a missing signing key aborts startup"""
        configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)
        app.state.identity_service = build_identity_service(settings, delivery)
        logger.info("Identity service started")
        yield

    app = FastAPI(
        title="Identity Service",
        description="Account registration, login and password reset",
        version="1.0.0",
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(IdentityError)
    async def identity_error_handler(request: Request, exc: IdentityError):
        status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logger.error("Identity request failed: path=%s error=%s", request.url.path, exc.detail)
        return JSONResponse(status_code=status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error: path=%s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    def get_identity_service(request: Request) -> IdentityService:
        return request.app.state.identity_service

    @app.post("/register", response_model=SessionResponse, responses=ERROR_RESPONSES, status_code=status.HTTP_201_CREATED)
    def register(payload: RegisterRequest, service: IdentityService = Depends(get_identity_service)):
        grant = service.register(
            payload.account_type,
            payload.email,
            payload.password,
            personal_info=payload.personal_info,
            company_info=payload.company_info,
        )
        return SessionResponse(
            token=grant.session_token,
            account_type=grant.account_type,
            message="Registration successful",
        )

    @app.post("/login", response_model=SessionResponse, responses=ERROR_RESPONSES)
    def login(credentials: LoginRequest, service: IdentityService = Depends(get_identity_service)):
        grant = service.login(credentials.email, credentials.password)
        return SessionResponse(
            token=grant.session_token,
            account_type=grant.account_type,
            message="Login successful",
        )

    # ---------------- Password Reset Flow ----------------

    @app.post("/forgot-password", response_model=AcceptedResponse, responses=ERROR_RESPONSES)
    def forgot_password(payload: ForgotPasswordRequest, service: IdentityService = Depends(get_identity_service)):
        result = service.initiate_reset(payload.email)
        return AcceptedResponse(
            accepted=result.accepted,
            message="Password reset link generated.",
        )

    @app.post("/reset-password/{token}", response_model=AcceptedResponse, responses=ERROR_RESPONSES)
    def reset_password(
        token: str,
        payload: ResetPasswordRequest,
        service: IdentityService = Depends(get_identity_service),
    ):
        result = service.complete_reset(token, payload.new_password)
        return AcceptedResponse(
            accepted=result.accepted,
            message="Password reset successful. You can now log in.",
        )

    @app.get("/health")
    def health():
        return {"service": "identity-service", "status": "running"}

    return app


app = create_app()
