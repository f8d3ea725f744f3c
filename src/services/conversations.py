"""Conversation service: the operations exposed to the HTTP and CLI layers.

Each call is one unit of work against one conversation.  ``post_message``
loads the conversation, appends the user's message, runs the routing graph
(``src.agent``) and saves the result once at the end, so a failed turn
leaves the stored conversation untouched.  There is no locking per
conversation id: two concurrent turns on the same conversation race and
the later save wins.
"""

from __future__ import annotations

import logging

from src.agent import create_conversation_agent
from src.config import (
    PREVIEW_LENGTH,
    PURGE_EMPTY_ON_LIST,
    RECENT_DOCTORS_LIMIT,
    SEED_DEFAULT_DOCTORS,
)
from src.errors import NotFoundError, ValidationError
from src.models import (
    ChatTurn,
    Conversation,
    ConversationPreview,
    DoctorInfo,
    Role,
    TriageOutcome,
    TriageRecord,
)
from src.services.completion import (
    TextCompletionClient,
    build_chat_client,
    build_classifier_client,
)
from src.services.intent import IntentClassifier
from src.services.metrics import metrics
from src.services.store import ConversationStore, DoctorDirectory, TriageLog
from src.services.triage import placeholder_doctor, triage_symptoms

logger = logging.getLogger(__name__)

EMPTY_PREVIEW = "(Không có nội dung)"


def _require(**fields: str | None) -> None:
    for name, value in fields.items():
        if value is None or not str(value).strip():
            raise ValidationError(name)


class ConversationService:
    def __init__(
        self,
        *,
        chat_client: TextCompletionClient,
        classifier_client: TextCompletionClient | None = None,
        store: ConversationStore | None = None,
        doctors: DoctorDirectory | None = None,
        triage_log: TriageLog | None = None,
        preview_length: int = PREVIEW_LENGTH,
        purge_empty_on_list: bool = PURGE_EMPTY_ON_LIST,
    ):
        self.store = store if store is not None else ConversationStore()
        self.doctors = doctors if doctors is not None else DoctorDirectory()
        self.triage_log = triage_log if triage_log is not None else TriageLog()
        self._preview_length = preview_length
        self._purge_empty_on_list = purge_empty_on_list
        self._agent = create_conversation_agent(
            chat_client=chat_client,
            intent_classifier=IntentClassifier(classifier_client or chat_client),
            doctors=self.doctors,
            triage_log=self.triage_log,
        )

    # ── Conversations ────────────────────────────────────────────────

    def create_conversation(self, user_id: str) -> str:
        _require(user_id=user_id)
        conversation = Conversation(user_id=user_id)
        self.store.save(conversation)
        logger.info("Created conversation %s for user %s", conversation.id, user_id)
        return conversation.id

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.store.get(conversation_id)
        if conversation is None:
            raise NotFoundError(conversation_id)
        return conversation

    def delete_conversation(self, conversation_id: str) -> None:
        if not self.store.delete(conversation_id):
            raise NotFoundError(conversation_id)
        logger.info("Deleted conversation %s", conversation_id)

    def list_conversations(self, user_id: str) -> list[ConversationPreview]:
        """The user's conversations, newest first, each with a short preview.

        Conversations that never received a message are purged first
        (all users, not just this one).
        """
        _require(user_id=user_id)
        if self._purge_empty_on_list:
            self.store.delete_empty()
        return [
            ConversationPreview(id=c.id, preview=self._preview(c))
            for c in self.store.list_by_user(user_id)
        ]

    def _preview(self, conversation: Conversation) -> str:
        if not conversation.messages or not conversation.messages[0].content:
            return EMPTY_PREVIEW
        return conversation.messages[0].content[: self._preview_length]

    # ── Chat ─────────────────────────────────────────────────────────

    def post_message(self, conversation_id: str, user_id: str, text: str) -> ChatTurn:
        """Run one chat turn and persist the updated conversation.

        Raises ``ValidationError`` for a blank user id / text,
        ``NotFoundError`` for an unknown conversation (or one owned by a
        different user) and lets ``UpstreamError`` from the completion
        service propagate; none of these save anything.
        """
        _require(user_id=user_id, question=text)
        conversation = self.get_conversation(conversation_id)
        if conversation.user_id != user_id:
            logger.warning(
                "User %s tried to post to conversation %s owned by someone else",
                user_id, conversation_id,
            )
            raise NotFoundError(conversation_id)

        previous_mode = conversation.mode
        conversation.append_message(Role.USER, text)

        result = self._agent.invoke(
            {"conversation": conversation, "text": text, "reply": "", "wants_doctor": False}
        )
        updated: Conversation = result["conversation"]
        self.store.save(updated)

        if updated.mode != previous_mode:
            metrics.record_transition(previous_mode, updated.mode)
            logger.info(
                "Conversation %s: %s -> %s", updated.id, previous_mode, updated.mode,
            )
        return ChatTurn(reply=result["reply"], conversation=updated)

    # ── Triage ───────────────────────────────────────────────────────

    def run_triage(self, user_id: str, symptoms: str) -> TriageOutcome:
        """Classify symptoms outside a chat.  Always returns a doctor record:
        the matched one, or a placeholder pointing to the nearest hospital."""
        _require(user_id=user_id, symptoms=symptoms)
        record, doctor = triage_symptoms(
            user_id, symptoms, triage_log=self.triage_log, doctors=self.doctors,
        )
        if doctor is None:
            doctor = placeholder_doctor(record.suggested_specialty)
        return TriageOutcome(triage=record, doctor=doctor)

    def list_triages(self, user_id: str) -> list[TriageRecord]:
        _require(user_id=user_id)
        return self.triage_log.list_by_user(user_id)

    def doctor_info(self, user_id: str) -> DoctorInfo:
        """Doctors from the user's most recent doctor chats plus one suggestion."""
        _require(user_id=user_id)
        recent = [
            c.assigned_doctor
            for c in self.store.list_doctor_conversations(user_id)[:RECENT_DOCTORS_LIMIT]
        ]
        return DoctorInfo(recent=recent, suggested=self.doctors.find_any())


def create_conversation_service() -> ConversationService:
    """Wire the production service: Anthropic clients, in-memory stores,
    and the default doctors when ``SEED_DEFAULT_DOCTORS`` is on."""
    doctors = DoctorDirectory()
    if SEED_DEFAULT_DOCTORS:
        doctors.seed_defaults()
    return ConversationService(
        chat_client=build_chat_client(),
        classifier_client=build_classifier_client(),
        doctors=doctors,
    )
