"""FastAPI application factory, CORS, and error mapping."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import Settings, get_settings
from src.knowledge.store import DocumentStore
from src.providers.errors import ProviderExhaustedError, ProviderFatalError
from src.providers.gateway import build_gateway
from src.schemas.chat import ErrorResponse
from src.services.chat_service import ChatService
from src.utils.logging_config import get_logger
from src.utils.unanswered_logger import UnansweredRecorder

logger = get_logger("persona.app")


def build_chat_service(settings: Settings) -> ChatService:
    """Load content and wire the pipeline collaborators."""
    return ChatService(
        store=DocumentStore(settings.content_root).load(),
        gateway=build_gateway(settings),
        recorder=UnansweredRecorder(settings.unanswered_log_path),
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return "Invalid JSON"
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Invalid {location or 'body'}: {first.get('msg', 'invalid value')}"


def create_app(
    settings: Optional[Settings] = None,
    chat_service: Optional[ChatService] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.chat_service is None:
            app.state.chat_service = build_chat_service(settings)
        yield

    app = FastAPI(title=f"{settings.app_name} API", version="1.0", lifespan=lifespan)
    app.state.chat_service = chat_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=ErrorResponse(error=_validation_message(exc)).model_dump())

    @app.exception_handler(ProviderFatalError)
    async def provider_fatal_handler(request: Request, exc: ProviderFatalError):
        return JSONResponse(status_code=500, content=ErrorResponse(error=str(exc)).model_dump())

    @app.exception_handler(ProviderExhaustedError)
    async def provider_exhausted_handler(request: Request, exc: ProviderExhaustedError):
        return JSONResponse(status_code=500, content=ErrorResponse(error=str(exc)).model_dump())

    from src.routers.chat import router as chat_router
    app.include_router(chat_router)

    return app
