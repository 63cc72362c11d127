"""FastAPI application exposing the user REST API."""
from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import anyio
from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_settings
from .cors import CORS_HEADERS, CORSHeadersMiddleware
from .models import CreateUserDto, PayloadError, UpdateUserDto, User
from .proxy import DataServiceProxy, ProxyResult, ResponseParseError, ServiceError
from .transport import TransportError, create_transport

logger = logging.getLogger("userhub.api")

USER_NOT_FOUND = "User not found"
SERVICE_UNAVAILABLE = "Data service unavailable"


class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str
    database: str


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    email: str
    name: Optional[str] = None
    created_at: str = Field(default="", alias="createdAt")
    updated_at: str = Field(default="", alias="updatedAt")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls.model_validate(user.to_dict())


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "Invalid request"))
        return f"{location}: {message}" if location else message
    return "Invalid request"


async def _read_json_body(request: Request) -> object:
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from exc


def build_proxy(settings: Settings) -> DataServiceProxy:
    transport = create_transport(settings.transport, timeout=settings.service_timeout)
    return DataServiceProxy(settings.service_url, transport=transport)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": ...}`` without internal details."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError):
        # only /users/{user_id} takes a path parameter; a malformed id names no user
        if any(tuple(error.get("loc", ()))[:1] == ("path",) for error in exc.errors()):
            return _error_response(status.HTTP_404_NOT_FOUND, USER_NOT_FOUND)
        return _error_response(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(ServiceError)
    async def handle_service_error(_: Request, exc: ServiceError):
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(TransportError)
    async def handle_transport_error(_: Request, exc: TransportError):
        logger.error("Data service transport failure: %s", exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to reach data service")

    @app.exception_handler(ResponseParseError)
    async def handle_parse_error(_: Request, exc: ResponseParseError):
        logger.error("Unreadable data service response: %s", exc)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to parse data service response",
        )

    # Runs outside the middleware stack, so CORS headers are added here.
    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error while serving %s %s", request.method, request.url.path)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            headers=dict(CORS_HEADERS),
        )


def register_routes(app: FastAPI, proxy: DataServiceProxy, *, report_outages: bool = False) -> None:
    """Expose the health and user endpoints on ``app``."""

    router = APIRouter(prefix="/api")

    def _not_found(result: ProxyResult) -> HTTPException:
        if result.unavailable and report_outages:
            return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SERVICE_UNAVAILABLE)
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=USER_NOT_FOUND)

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            message="userhub backend is running",
            timestamp=str(int(time.time())),
            database="connected" if proxy.is_connected() else "disconnected",
        )

    @router.get("/users", response_model=List[UserResponse])
    async def list_users() -> List[UserResponse]:
        result = await anyio.to_thread.run_sync(proxy.try_find_many_users)
        if result.unavailable and report_outages:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SERVICE_UNAVAILABLE)
        return [UserResponse.from_user(user) for user in result.value or []]

    @router.get(
        "/users/email/{email}",
        response_model=UserResponse,
        responses={404: {"model": ErrorResponse}},
    )
    async def get_user_by_email(email: str) -> UserResponse:
        result = await anyio.to_thread.run_sync(proxy.try_find_user_by_email, email)
        if result.value is None:
            raise _not_found(result)
        return UserResponse.from_user(result.value)

    @router.get(
        "/users/{user_id}",
        response_model=UserResponse,
        responses={404: {"model": ErrorResponse}},
    )
    async def get_user(user_id: int) -> UserResponse:
        result = await anyio.to_thread.run_sync(proxy.try_find_user_by_id, user_id)
        if result.value is None:
            raise _not_found(result)
        return UserResponse.from_user(result.value)

    @router.post(
        "/users",
        status_code=status.HTTP_201_CREATED,
        response_model=UserResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def create_user(request: Request) -> UserResponse:
        payload = await _read_json_body(request)
        try:
            dto = CreateUserDto.from_dict(payload)
        except PayloadError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if not dto.email.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

        user = await anyio.to_thread.run_sync(proxy.create_user, dto)
        logger.info("Created user %s", user.id)
        return UserResponse.from_user(user)

    @router.put(
        "/users/{user_id}",
        response_model=UserResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    )
    async def update_user(user_id: int, request: Request) -> UserResponse:
        payload = await _read_json_body(request)
        try:
            dto = UpdateUserDto.from_dict(payload)
        except PayloadError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

        result = await anyio.to_thread.run_sync(proxy.try_update_user, user_id, dto)
        if result.value is None:
            raise _not_found(result)
        logger.info("Updated user %s", user_id)
        return UserResponse.from_user(result.value)

    @router.delete(
        "/users/{user_id}",
        response_model=MessageResponse,
        responses={404: {"model": ErrorResponse}},
    )
    async def delete_user(user_id: int) -> MessageResponse:
        result = await anyio.to_thread.run_sync(proxy.try_delete_user, user_id)
        if not result.ok:
            raise _not_found(result)
        logger.info("Deleted user %s", user_id)
        return MessageResponse(message="User deleted successfully")

    app.include_router(router)


def create_app(
    *,
    settings: Settings | None = None,
    proxy: DataServiceProxy | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the user API."""

    settings = settings or load_settings()
    data_proxy = proxy or build_proxy(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if settings.connect_on_startup:
            logger.info("Connecting to data service at %s", data_proxy.service_url)
            connected = await anyio.to_thread.run_sync(data_proxy.connect)
            if not connected:
                logger.warning(
                    "Could not connect to data service at %s; requests will still be forwarded",
                    data_proxy.service_url,
                )
        try:
            yield
        finally:
            data_proxy.disconnect()

    app = FastAPI(
        title="userhub API",
        version="0.1.0",
        description="REST API for users stored by an external data service.",
        lifespan=lifespan,
    )
    app.add_middleware(CORSHeadersMiddleware)
    app.state.settings = settings
    app.state.proxy = data_proxy

    register_exception_handlers(app)
    register_routes(app, data_proxy, report_outages=settings.report_outages)

    return app


__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse",
    "UserResponse",
    "build_proxy",
    "create_app",
    "register_exception_handlers",
    "register_routes",
]
