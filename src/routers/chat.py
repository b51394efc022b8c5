"""Chat and health REST endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.schemas.chat import ChatRequest, ChatResponse, ErrorResponse
from src.services.chat_service import ChatService

router = APIRouter()


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        500: {"model": ErrorResponse, "description": "Providers failed"},
    },
)
async def chat(payload: ChatRequest, service: ChatService = Depends(get_chat_service)):
    message = payload.message.strip()
    character = payload.character.strip().lower()

    if not message:
        return JSONResponse(status_code=400, content=ErrorResponse(error="Missing message").model_dump())
    if not character:
        return JSONResponse(status_code=400, content=ErrorResponse(error="Missing character").model_dump())

    # Provider errors are mapped to 500 by the app-level exception handlers.
    result = await service.answer(character, message, payload.conversation_history)
    return ChatResponse(answer=result.answer, should_refuse=result.should_refuse)


@router.get("/health")
async def health(service: ChatService = Depends(get_chat_service)):
    return {"status": "ok", "characters": len(service.store.character_slugs)}
