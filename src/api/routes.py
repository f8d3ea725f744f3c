"""FastAPI route definitions for the Mediverse conversation API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, Request

from src.api.schemas import (
    ChatRequest,
    ChatResponse,
    ConversationListResponse,
    ConversationResponse,
    CreateConversationRequest,
    CreateConversationResponse,
    DeleteResponse,
    DoctorInfoResponse,
    HealthResponse,
    TriageListResponse,
    TriageRequest,
    TriageResponse,
)
from src.errors import NotFoundError, UpstreamError, ValidationError
from src.services.conversations import ConversationService

logger = logging.getLogger(__name__)

router = APIRouter()

_INTERNAL_ERROR_DETAIL = "An internal error occurred. Please try again."


def _get_service(request: Request) -> ConversationService:
    """Retrieve the conversation service built during the FastAPI lifespan."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="The service is still starting up. Please try again in a moment.",
        )
    return service


async def _call(request: Request, func, *args):
    """Run a blocking service call on a worker thread and map its errors.

    Validation and not-found errors carry their own message; anything else
    is logged with its traceback and reported without internal details.
    """
    request_id = getattr(request.state, "request_id", "?")
    try:
        return await asyncio.to_thread(func, *args)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Conversation not found") from e
    except UpstreamError as e:
        logger.error("[%s] Upstream failure: %s", request_id, e)
        raise HTTPException(status_code=500, detail=_INTERNAL_ERROR_DETAIL) from e
    except Exception as e:
        logger.exception("[%s] Error processing request", request_id)
        raise HTTPException(status_code=500, detail=_INTERNAL_ERROR_DETAIL) from e


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/conversation", response_model=CreateConversationResponse)
async def create_conversation(body: CreateConversationRequest, request: Request):
    service = _get_service(request)
    conversation_id = await _call(request, service.create_conversation, body.user_id)
    return CreateConversationResponse(id=conversation_id)


@router.post("/chat/{conversation_id}", response_model=ChatResponse)
async def chat(conversation_id: str, body: ChatRequest, request: Request):
    """Send a message to a conversation and get the assistant's reply.

    The turn may call the text-completion service up to twice (intent
    check, then reply), so it runs on a worker thread to keep the event
    loop free for other requests.
    """
    service = _get_service(request)
    turn = await _call(
        request, service.post_message, conversation_id, body.user_id, body.question,
    )
    conversation = turn.conversation
    return ChatResponse(
        answer=turn.reply,
        messages=conversation.messages,
        mode=conversation.mode,
        doctor=conversation.assigned_doctor,
        pending_doctor=conversation.pending_doctor,
    )


@router.get("/conversation/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(conversation_id: str, request: Request):
    service = _get_service(request)
    conversation = await _call(request, service.get_conversation, conversation_id)
    return ConversationResponse(
        id=conversation.id,
        mode=conversation.mode,
        messages=conversation.messages,
        doctor=conversation.assigned_doctor,
    )


@router.delete("/conversation/{conversation_id}", response_model=DeleteResponse)
async def delete_conversation(conversation_id: str, request: Request):
    service = _get_service(request)
    await _call(request, service.delete_conversation, conversation_id)
    return DeleteResponse()


@router.get("/conversations/{user_id}", response_model=ConversationListResponse)
async def list_conversations(user_id: str, request: Request):
    service = _get_service(request)
    previews = await _call(request, service.list_conversations, user_id)
    return ConversationListResponse(conversations=previews)


@router.post("/triage", response_model=TriageResponse)
async def triage(body: TriageRequest, request: Request):
    """Suggest a specialty for the given symptoms and a doctor to see."""
    service = _get_service(request)
    outcome = await _call(request, service.run_triage, body.user_id, body.symptoms)
    return TriageResponse(triage=outcome.triage, doctor=outcome.doctor)


@router.get("/triages/{user_id}", response_model=TriageListResponse)
async def list_triages(user_id: str, request: Request):
    service = _get_service(request)
    records = await _call(request, service.list_triages, user_id)
    return TriageListResponse(triages=records)


@router.get("/doctor-info", response_model=DoctorInfoResponse)
async def doctor_info(request: Request, user_id: str = Query(..., min_length=1)):
    service = _get_service(request)
    info = await _call(request, service.doctor_info, user_id)
    return DoctorInfoResponse(recent=info.recent, suggested=info.suggested)
