"""Domain models for conversations, doctors and triage records.

A conversation's ``mode`` is the single source of truth for which branch of
the state machine applies.  The doctor payloads are bound to it:

  - ``assigned_doctor`` is present iff ``mode == doctor_active``
  - ``pending_doctor``  is present iff ``mode == doctor_handoff_pending``

The validator enforces this on construction, and every transition method
re-checks it after mutating.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class Mode(StrEnum):
    GENERIC = "generic"
    DOCTOR_HANDOFF_PENDING = "doctor_handoff_pending"
    DOCTOR_ACTIVE = "doctor_active"


class Specialty(StrEnum):
    """Departments a doctor can be matched to (labels double as directory keys)."""

    CARDIOLOGY = "Tim mạch"
    DERMATOLOGY = "Da liễu"
    ENT = "Tai mũi họng"
    GENERAL_MEDICINE = "Nội tổng quát"


class Message(BaseModel):
    """One transcript entry.  Frozen once appended."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class Doctor(BaseModel):
    name: str
    specialty: str
    hospital: str | None = None
    years_experience: int | None = None


class Conversation(BaseModel):
    """A user's chat thread plus the routing mode it is currently in."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)
    mode: Mode = Mode.GENERIC
    assigned_doctor: Doctor | None = None
    pending_doctor: Doctor | None = None
    messages: list[Message] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_mode_payload(self) -> Conversation:
        self._check_mode_payload()
        return self

    def _check_mode_payload(self) -> None:
        if (self.assigned_doctor is not None) != (self.mode == Mode.DOCTOR_ACTIVE):
            raise ValueError(
                f"assigned_doctor must be set exactly when mode is "
                f"{Mode.DOCTOR_ACTIVE} (mode={self.mode})"
            )
        if (self.pending_doctor is not None) != (self.mode == Mode.DOCTOR_HANDOFF_PENDING):
            raise ValueError(
                f"pending_doctor must be set exactly when mode is "
                f"{Mode.DOCTOR_HANDOFF_PENDING} (mode={self.mode})"
            )

    # ── Transcript ───────────────────────────────────────────────────

    def append_message(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    @property
    def is_empty(self) -> bool:
        return not self.messages

    # ── Mode transitions ─────────────────────────────────────────────

    def offer_doctor(self, doctor: Doctor) -> None:
        """Move to ``doctor_handoff_pending`` (a second offer replaces the first)."""
        if self.mode == Mode.DOCTOR_ACTIVE:
            raise ValueError("Cannot offer a doctor to a conversation already in doctor mode")
        self.mode = Mode.DOCTOR_HANDOFF_PENDING
        self.pending_doctor = doctor
        self._check_mode_payload()

    def accept_handoff(self) -> Doctor:
        if self.mode != Mode.DOCTOR_HANDOFF_PENDING:
            raise ValueError(f"No pending doctor to accept (mode={self.mode})")
        doctor = self.pending_doctor
        self.mode = Mode.DOCTOR_ACTIVE
        self.assigned_doctor = doctor
        self.pending_doctor = None
        self._check_mode_payload()
        return doctor

    def decline_handoff(self) -> None:
        if self.mode != Mode.DOCTOR_HANDOFF_PENDING:
            raise ValueError(f"No pending doctor to decline (mode={self.mode})")
        self.mode = Mode.GENERIC
        self.pending_doctor = None
        self._check_mode_payload()


class TriageRecord(BaseModel):
    """Audit entry written every time symptom text is classified."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    symptoms: str
    suggested_specialty: Specialty
    timestamp: datetime = Field(default_factory=utc_now)


# ── Service results ──────────────────────────────────────────────────


class ChatTurn(BaseModel):
    """Outcome of one ``post_message`` call."""

    reply: str
    conversation: Conversation


class TriageOutcome(BaseModel):
    triage: TriageRecord
    doctor: Doctor


class ConversationPreview(BaseModel):
    id: str
    preview: str


class DoctorInfo(BaseModel):
    recent: list[Doctor] = Field(default_factory=list)
    suggested: Doctor | None = None
