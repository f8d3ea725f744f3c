"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.models import ConversationPreview, Doctor, Message, Mode, TriageRecord


class CreateConversationRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=100)


class CreateConversationResponse(BaseModel):
    success: bool = True
    id: str


class ChatRequest(BaseModel):
    """Incoming chat message from the frontend."""

    user_id: str = Field(..., min_length=1, max_length=100)
    question: str = Field(..., min_length=1, max_length=2000, description="The user's message")


class ChatResponse(BaseModel):
    """Reply plus the updated transcript and routing state."""

    success: bool = True
    answer: str = Field(..., description="The assistant's reply for this turn")
    messages: list[Message]
    mode: Mode
    doctor: Doctor | None = Field(None, description="Assigned doctor in doctor mode")
    pending_doctor: Doctor | None = Field(None, description="Doctor awaiting confirmation")


class ConversationResponse(BaseModel):
    success: bool = True
    id: str
    mode: Mode
    messages: list[Message]
    doctor: Doctor | None = None


class ConversationListResponse(BaseModel):
    success: bool = True
    conversations: list[ConversationPreview]


class DeleteResponse(BaseModel):
    success: bool = True


class TriageRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=100)
    symptoms: str = Field(..., min_length=1, max_length=2000)


class TriageResponse(BaseModel):
    success: bool = True
    triage: TriageRecord
    doctor: Doctor


class TriageListResponse(BaseModel):
    success: bool = True
    triages: list[TriageRecord]


class DoctorInfoResponse(BaseModel):
    success: bool = True
    recent: list[Doctor]
    suggested: Doctor | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "mediverse-triage"
