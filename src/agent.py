"""LangGraph state machine that routes each chat turn for a conversation.

Architecture:
  The graph has five nodes.  Which ones run depends on the conversation's
  ``mode`` when the turn starts:

    1. **confirmation**: handoff pending: accepts or declines the offered
                          doctor from keywords alone (no model call)
    2. **doctor_chat** : doctor mode: replies in the assigned doctor's persona
    3. **intent**      : asks the cheap classifier model whether the user
                          wants to see a doctor
    4. **triage**      : matches a specialty, logs the triage, looks up a
                          doctor and, if one exists, offers the handoff
    5. **nurse_chat**  : generic AI-nurse reply

  Routing:
    START → (pending?)  → confirmation → (accepted/declined?) → END
                                       → (neither?)           → intent
    START → (doctor?)   → doctor_chat → END
    START → (generic?)  → intent → (wants doctor?) → triage → (offered?) → END
                                                            → (no doctor?) → nurse_chat
                                 → (no?)           → nurse_chat → END

  An ambiguous reply to a pending offer falls through to the generic path
  with the offer left outstanding.  Every path appends exactly one
  assistant message.

  The graph holds no memory of its own: the caller loads the conversation,
  appends the user's message, invokes the graph and saves the returned
  conversation.
"""

from __future__ import annotations

import logging

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from src.models import Conversation, Mode, Role
from src.prompts import (
    HANDOFF_DECLINED_MESSAGE,
    NO_REPLY_PLACEHOLDER,
    build_doctor_prompt,
    build_nurse_prompt,
    handoff_accepted,
    handoff_confirmation,
)
from src.services.completion import TextCompletionClient
from src.services.intent import IntentClassifier
from src.services.store import DoctorDirectory, TriageLog
from src.services.triage import contains_any, normalize_text, triage_symptoms

logger = logging.getLogger(__name__)

AFFIRMATIVE_TOKENS = ("có", "ok", "đúng", "yes")
NEGATIVE_TOKENS = ("không", "no", "từ chối")


# ── State schema ─────────────────────────────────────────────────────


class TurnState(TypedDict):
    """The state that flows through the graph for one chat turn.

    ``conversation`` already contains the user's message.  Nodes never
    mutate the object they receive; they return an updated copy.

    ``reply`` stays empty until a node has answered; the conditional edges
    use it to decide whether the turn is finished.  ``wants_doctor`` is set
    by the intent node and read by the edge after it.
    """

    conversation: Conversation
    text: str
    reply: str
    wants_doctor: bool


def _answer(conversation: Conversation, reply: str) -> dict:
    reply = (reply or "").strip() or NO_REPLY_PLACEHOLDER
    conversation.append_message(Role.ASSISTANT, reply)
    return {"conversation": conversation, "reply": reply}


# ── Node: confirmation (keywords only) ──────────────────────────────


def _make_confirmation_node():
    def confirmation_node(state: TurnState) -> dict:
        """Resolve a pending handoff offer from the user's reply."""
        lowered = normalize_text(state["text"])
        conversation = state["conversation"].model_copy(deep=True)

        if contains_any(lowered, AFFIRMATIVE_TOKENS):
            doctor = conversation.accept_handoff()
            logger.info("Conversation %s handed off to %s", conversation.id, doctor.name)
            return _answer(conversation, handoff_accepted(doctor))

        if contains_any(lowered, NEGATIVE_TOKENS):
            conversation.decline_handoff()
            logger.info("Conversation %s declined the doctor handoff", conversation.id)
            return _answer(conversation, HANDOFF_DECLINED_MESSAGE)

        logger.debug(
            "Conversation %s: reply neither accepts nor declines, offer stays open",
            conversation.id,
        )
        return {"reply": ""}

    return confirmation_node


# ── Node: doctor_chat ───────────────────────────────────────────────


def _make_doctor_node(chat_client: TextCompletionClient):
    def doctor_node(state: TurnState) -> dict:
        """Answer in the persona of the conversation's assigned doctor."""
        conversation = state["conversation"].model_copy(deep=True)
        prompt = build_doctor_prompt(
            conversation.assigned_doctor, conversation.messages, state["text"],
        )
        return _answer(conversation, chat_client.complete(prompt))

    return doctor_node


# ── Node: intent ────────────────────────────────────────────────────


def _make_intent_node(classifier: IntentClassifier):
    def intent_node(state: TurnState) -> dict:
        return {"wants_doctor": classifier.classify_wants_doctor(state["text"])}

    return intent_node


# ── Node: triage ────────────────────────────────────────────────────


def _make_triage_node(doctors: DoctorDirectory, triage_log: TriageLog):
    def triage_node(state: TurnState) -> dict:
        """Suggest a specialty and offer its doctor, if the directory has one."""
        conversation = state["conversation"].model_copy(deep=True)
        _, doctor = triage_symptoms(
            conversation.user_id, state["text"], triage_log=triage_log, doctors=doctors,
        )
        if doctor is None:
            return {"reply": ""}

        conversation.offer_doctor(doctor)
        logger.info("Conversation %s offered handoff to %s", conversation.id, doctor.name)
        return _answer(conversation, handoff_confirmation(doctor))

    return triage_node


# ── Node: nurse_chat ────────────────────────────────────────────────


def _make_nurse_node(chat_client: TextCompletionClient):
    def nurse_node(state: TurnState) -> dict:
        conversation = state["conversation"].model_copy(deep=True)
        prompt = build_nurse_prompt(conversation.messages, state["text"])
        return _answer(conversation, chat_client.complete(prompt))

    return nurse_node


# ── Conditional edges ────────────────────────────────────────────────


def route_by_mode(state: TurnState) -> str:
    mode = state["conversation"].mode
    if mode == Mode.DOCTOR_HANDOFF_PENDING:
        return "confirmation"
    if mode == Mode.DOCTOR_ACTIVE:
        return "doctor_chat"
    return "intent"


def after_confirmation(state: TurnState) -> str:
    return END if state.get("reply") else "intent"


def route_by_intent(state: TurnState) -> str:
    return "triage" if state.get("wants_doctor") else "nurse_chat"


def after_triage(state: TurnState) -> str:
    return END if state.get("reply") else "nurse_chat"


# ── Graph assembly ───────────────────────────────────────────────────


def create_conversation_agent(
    *,
    chat_client: TextCompletionClient,
    intent_classifier: IntentClassifier,
    doctors: DoctorDirectory,
    triage_log: TriageLog,
):
    """Build and compile the conversation routing graph.

    Returns a compiled graph that can be invoked with:
        graph.invoke({"conversation": convo, "text": "...", "reply": "", "wants_doctor": False})
    """
    graph = StateGraph(TurnState)

    graph.add_node("confirmation", _make_confirmation_node())
    graph.add_node("doctor_chat", _make_doctor_node(chat_client))
    graph.add_node("intent", _make_intent_node(intent_classifier))
    graph.add_node("triage", _make_triage_node(doctors, triage_log))
    graph.add_node("nurse_chat", _make_nurse_node(chat_client))

    graph.add_conditional_edges(
        START,
        route_by_mode,
        {"confirmation": "confirmation", "doctor_chat": "doctor_chat", "intent": "intent"},
    )
    graph.add_conditional_edges(
        "confirmation", after_confirmation, {"intent": "intent", END: END},
    )
    graph.add_conditional_edges(
        "intent", route_by_intent, {"triage": "triage", "nurse_chat": "nurse_chat"},
    )
    graph.add_conditional_edges(
        "triage", after_triage, {"nurse_chat": "nurse_chat", END: END},
    )
    graph.add_edge("doctor_chat", END)
    graph.add_edge("nurse_chat", END)

    compiled = graph.compile()
    logger.debug("Conversation agent compiled: %d nodes", len(graph.nodes))
    return compiled
