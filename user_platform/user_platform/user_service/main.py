from fastapi import FastAPI, Depends, Header, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import http_exception_handler as default_http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
import logging

from .config import settings
from .db import get_db, init_db
from .auth import (
    LOGIN_PERMISSIONS,
    AuthenticationError,
    AuthorizationError,
    Identity,
    Permission,
    TokenIssueError,
    TokenService,
    authorize,
    verify_password,
)
from .errors import APIError
from .repository import (
    RepositoryError,
    UniqueConstraintViolationError,
    UserFilter,
    UserNotFoundError,
    UserRepository,
)
from .schemas import (
    UserPayload,
    ResponseHeader,
    UserOut,
    RegisterUserResponse,
    UserLoginResponse,
    GetUserResponse,
    UpdateUserResponse,
    ErrorResponse,
)
from .validators import (
    convert_register_request,
    convert_update_request,
    validate_password,
    validate_phone_number,
)
from .utils.event_logger import log_user_event
from .routes import health

logger = logging.getLogger(__name__)

SUCCESS_MSG = "request successful"
DUPLICATE_PHONE_NUMBER_MSG = "phone number is already registered to an existing user"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and load the RSA key pair; a key loading failure aborts startup."""
    init_db()
    if getattr(app.state, "token_service", None) is None:
        app.state.token_service = TokenService.from_files(
            settings.PRIVATE_KEY_FILE,
            settings.PUBLIC_KEY_FILE,
            passphrase=settings.PRIVATE_KEY_PASSPHRASE,
            ttl=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        )
    yield


app = FastAPI(
    title="User Service",
    description="User registration, login and profile management",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Authorization"],
)

app.include_router(health.router)


def error_envelope(messages) -> dict:
    return ErrorResponse(header=ResponseHeader(success=False, messages=messages)).model_dump()


@app.exception_handler(StarletteHTTPException)
async def envelope_http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, list):
        messages = exc.detail
    elif isinstance(exc.detail, str):
        messages = [exc.detail]
    else:
        return await default_http_exception_handler(request, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(messages),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected malformed request body on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_envelope(["invalid request body"]),
    )


def get_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def authenticate(
    authorization: Optional[str],
    tokens: TokenService,
    permission: Permission,
) -> Identity:
    """
    Verify the bearer token and check it grants ``permission``.

    Raises:
        APIError: 401 for a missing/invalid/expired token, 403 for a missing permission
    """
    try:
        identity = tokens.authenticate(authorization)
    except AuthenticationError as e:
        raise APIError(status.HTTP_401_UNAUTHORIZED, str(e), headers={"WWW-Authenticate": "Bearer"}) from e

    try:
        authorize(identity, permission)
    except AuthorizationError as e:
        logger.info("Permission %s denied for user_id=%s", permission.value, identity.user_id)
        raise APIError(status.HTTP_403_FORBIDDEN, str(e)) from e

    return identity


@app.post("/v1/user", response_model=RegisterUserResponse, response_model_exclude_none=True)
def register_user(
    payload: UserPayload,
    request: Request,
    repo: UserRepository = Depends(get_repository),
):
    new_user, errors = convert_register_request(payload)
    if errors:
        raise APIError(status.HTTP_400_BAD_REQUEST, errors)

    try:
        user_id = repo.insert_user(new_user)
    except UniqueConstraintViolationError as e:
        raise APIError(status.HTTP_409_CONFLICT, DUPLICATE_PHONE_NUMBER_MSG) from e
    except RepositoryError as e:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)) from e

    log_user_event("register", request, user_id=user_id)
    return RegisterUserResponse(
        header=ResponseHeader(success=True, messages=[SUCCESS_MSG]),
        user=UserOut(id=user_id),
    )


@app.post("/v1/user/login", response_model=UserLoginResponse, response_model_exclude_none=True)
def login(
    payload: UserPayload,
    request: Request,
    response: Response,
    repo: UserRepository = Depends(get_repository),
    tokens: TokenService = Depends(get_token_service),
):
    phone_number, errors = validate_phone_number(payload.phone_number)
    if errors:
        raise APIError(status.HTTP_400_BAD_REQUEST, errors)

    try:
        user = repo.get_single_user(UserFilter(phone_number=phone_number))
    except UserNotFoundError as e:
        raise APIError(status.HTTP_400_BAD_REQUEST, "user does not exist") from e
    except RepositoryError as e:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)) from e

    password, errors = validate_password(payload.password)
    if errors:
        raise APIError(status.HTTP_400_BAD_REQUEST, errors)

    if not verify_password(password, user.password):
        log_user_event("login_failure", request, user_id=user.id)
        raise APIError(status.HTTP_400_BAD_REQUEST, "invalid password")

    user_id = user.id
    try:
        repo.increment_successful_login_count(user_id)
    except RepositoryError as e:
        # best effort: the login still succeeds
        logger.warning("Failed to increment successful login count for user_id=%s: %s", user_id, e)

    try:
        token = tokens.issue(user_id, LOGIN_PERMISSIONS)
    except TokenIssueError as e:
        logger.error("Failed to issue token for user_id=%s: %s", user_id, e)
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "failed to generate token") from e
    response.headers["Authorization"] = f"Bearer {token}"

    log_user_event("login_success", request, user_id=user_id)
    return UserLoginResponse(
        header=ResponseHeader(success=True, messages=[SUCCESS_MSG]),
        user=UserOut(id=user_id),
    )


@app.get("/v1/user", response_model=GetUserResponse, response_model_exclude_none=True)
def get_user(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    repo: UserRepository = Depends(get_repository),
    tokens: TokenService = Depends(get_token_service),
):
    identity = authenticate(authorization, tokens, Permission.GET_PROFILE)

    try:
        user = repo.get_single_user(UserFilter(user_id=identity.user_id))
    except RepositoryError as e:
        # includes UserNotFoundError: the token outlived its user row
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)) from e

    log_user_event("profile_read", request, user_id=identity.user_id)
    profile = user.to_dict()
    return GetUserResponse(
        header=ResponseHeader(success=True, messages=[SUCCESS_MSG]),
        user=UserOut(full_name=profile["full_name"], phone_number=profile["phone_number"]),
    )


@app.put("/v1/user", response_model=UpdateUserResponse)
def update_user(
    payload: UserPayload,
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    repo: UserRepository = Depends(get_repository),
    tokens: TokenService = Depends(get_token_service),
):
    identity = authenticate(authorization, tokens, Permission.UPDATE_PROFILE)

    profile, errors = convert_update_request(payload)
    if errors:
        raise APIError(status.HTTP_400_BAD_REQUEST, errors)

    try:
        affected = repo.update_user(identity.user_id, profile)
    except UniqueConstraintViolationError as e:
        raise APIError(status.HTTP_409_CONFLICT, DUPLICATE_PHONE_NUMBER_MSG) from e
    except RepositoryError as e:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e)) from e

    if affected == 0:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "user not found")

    updated_fields = ",".join(
        name for name in ("full_name", "phone_number") if getattr(profile, name) is not None
    )
    log_user_event("profile_update", request, user_id=identity.user_id, fields=updated_fields)
    return UpdateUserResponse(header=ResponseHeader(success=True, messages=[SUCCESS_MSG]))


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level=settings.LOG_LEVEL.lower())
