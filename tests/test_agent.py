"""Tests for the conversation routing graph.

Covers:
  - Conditional edge functions (mode, confirmation, intent, triage)
  - Pending-confirmation keywords (accept / decline / neither)
  - Doctor-persona and nurse replies with stubbed completion clients
  - Triage offer vs. no-doctor fallback
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from src.agent import (
    after_confirmation,
    after_triage,
    create_conversation_agent,
    route_by_intent,
    route_by_mode,
)
from src.models import Conversation, Doctor, Mode, Role, Specialty
from src.prompts import HANDOFF_DECLINED_MESSAGE, NO_REPLY_PLACEHOLDER
from src.services.intent import IntentClassifier
from src.services.store import DoctorDirectory, TriageLog

CARDIO = Doctor(name="BS. Nguyễn Văn An", specialty=Specialty.CARDIOLOGY, hospital="BV Tim")


# ── Helpers ──────────────────────────────────────────────────────────


def _make_client(reply: str = "Lời khuyên của y tá.") -> MagicMock:
    client = MagicMock()
    client.complete.return_value = reply
    return client


def _build(*, wants_doctor: bool = False, doctors=None, chat=None, triage_log=None):
    chat = chat or _make_client()
    classifier = _make_client("yes" if wants_doctor else "no")
    agent = create_conversation_agent(
        chat_client=chat,
        intent_classifier=IntentClassifier(classifier),
        doctors=doctors if doctors is not None else DoctorDirectory([CARDIO]),
        triage_log=triage_log if triage_log is not None else TriageLog(),
    )
    return agent, chat, classifier


def _turn(agent, conversation: Conversation, text: str) -> dict:
    conversation.append_message(Role.USER, text)
    return agent.invoke(
        {"conversation": conversation, "text": text, "reply": "", "wants_doctor": False}
    )


def _pending() -> Conversation:
    convo = Conversation(user_id="u1")
    convo.offer_doctor(CARDIO)
    return convo


# ── TestEdges ────────────────────────────────────────────────────────


class TestEdges:
    def test_route_by_mode(self):
        assert route_by_mode({"conversation": Conversation(user_id="u")}) == "intent"
        assert route_by_mode({"conversation": _pending()}) == "confirmation"
        active = Conversation(user_id="u", mode=Mode.DOCTOR_ACTIVE, assigned_doctor=CARDIO)
        assert route_by_mode({"conversation": active}) == "doctor_chat"

    def test_after_confirmation(self):
        assert after_confirmation({"reply": "✅"}) == "__end__"
        assert after_confirmation({"reply": ""}) == "intent"

    def test_route_by_intent(self):
        assert route_by_intent({"wants_doctor": True}) == "triage"
        assert route_by_intent({"wants_doctor": False}) == "nurse_chat"
        assert route_by_intent({}) == "nurse_chat"

    def test_after_triage(self):
        assert after_triage({"reply": "Bạn có muốn..."}) == "__end__"
        assert after_triage({"reply": ""}) == "nurse_chat"


# ── TestPendingConfirmation ──────────────────────────────────────────


class TestPendingConfirmation:
    @pytest.mark.parametrize("text", ["có", "Ok bạn", "đúng rồi", "YES please"])
    def test_affirmative_hands_off(self, text):
        agent, chat, classifier = _build()
        result = _turn(agent, _pending(), text)

        convo = result["conversation"]
        assert convo.mode == Mode.DOCTOR_ACTIVE
        assert convo.assigned_doctor == CARDIO
        assert convo.pending_doctor is None
        assert "BS. Nguyễn Văn An" in result["reply"]
        assert "Tim mạch" in result["reply"]
        chat.complete.assert_not_called()
        classifier.complete.assert_not_called()

    @pytest.mark.parametrize("text", ["không", "no", "tôi từ chối"])
    def test_negative_declines(self, text):
        agent, chat, classifier = _build()
        result = _turn(agent, _pending(), text)

        convo = result["conversation"]
        assert convo.mode == Mode.GENERIC
        assert convo.pending_doctor is None
        assert result["reply"] == HANDOFF_DECLINED_MESSAGE
        chat.complete.assert_not_called()
        classifier.complete.assert_not_called()

    def test_ambiguous_reply_keeps_offer_and_answers_as_nurse(self):
        agent, chat, classifier = _build()
        result = _turn(agent, _pending(), "tôi bị sốt")

        convo = result["conversation"]
        assert convo.mode == Mode.DOCTOR_HANDOFF_PENDING
        assert convo.pending_doctor == CARDIO
        assert result["reply"] == "Lời khuyên của y tá."
        classifier.complete.assert_called_once()
        chat.complete.assert_called_once()

    def test_ambiguous_reply_asking_for_doctor_renews_offer(self):
        derm = Doctor(name="BS. Trần Thị Bình", specialty=Specialty.DERMATOLOGY)
        agent, chat, _ = _build(wants_doctor=True, doctors=DoctorDirectory([CARDIO, derm]))
        result = _turn(agent, _pending(), "cho tôi gặp bác sĩ về mụn")

        convo = result["conversation"]
        assert convo.mode == Mode.DOCTOR_HANDOFF_PENDING
        assert convo.pending_doctor == derm
        chat.complete.assert_not_called()


# ── TestDoctorChat ───────────────────────────────────────────────────


class TestDoctorChat:
    def test_doctor_persona_reply(self):
        agent, chat, classifier = _build(chat=_make_client("Bạn nên đo huyết áp hằng ngày."))
        convo = Conversation(user_id="u1", mode=Mode.DOCTOR_ACTIVE, assigned_doctor=CARDIO)

        result = _turn(agent, convo, "tôi hay bị chóng mặt")

        assert result["reply"] == "Bạn nên đo huyết áp hằng ngày."
        assert result["conversation"].mode == Mode.DOCTOR_ACTIVE
        prompt = chat.complete.call_args[0][0]
        assert "BS. Nguyễn Văn An" in prompt
        assert "tôi hay bị chóng mặt" in prompt
        classifier.complete.assert_not_called()

    def test_doctor_mode_has_no_exit(self):
        """Even "không" is answered by the doctor persona."""
        agent, chat, _ = _build()
        convo = Conversation(user_id="u1", mode=Mode.DOCTOR_ACTIVE, assigned_doctor=CARDIO)
        result = _turn(agent, convo, "không")
        assert result["conversation"].mode == Mode.DOCTOR_ACTIVE
        chat.complete.assert_called_once()


# ── TestGenericBranch ────────────────────────────────────────────────


class TestGenericBranch:
    def test_no_intent_goes_to_nurse(self):
        agent, chat, _ = _build(wants_doctor=False)
        result = _turn(agent, Conversation(user_id="u1"), "tôi bị đau đầu nhẹ")

        assert result["conversation"].mode == Mode.GENERIC
        assert result["reply"] == "Lời khuyên của y tá."
        chat.complete.assert_called_once()

    def test_intent_with_doctor_offers_handoff_without_nurse_call(self):
        log = TriageLog()
        agent, chat, _ = _build(wants_doctor=True, triage_log=log)
        result = _turn(agent, Conversation(user_id="u1"), "tôi muốn khám tim")

        convo = result["conversation"]
        assert convo.mode == Mode.DOCTOR_HANDOFF_PENDING
        assert convo.pending_doctor == CARDIO
        assert "(Có / Không)" in result["reply"]
        chat.complete.assert_not_called()
        assert log.list_by_user("u1")[0].suggested_specialty == Specialty.CARDIOLOGY

    def test_intent_without_doctor_falls_back_to_nurse(self):
        log = TriageLog()
        agent, chat, _ = _build(wants_doctor=True, doctors=DoctorDirectory(), triage_log=log)
        result = _turn(agent, Conversation(user_id="u1"), "tôi muốn khám da")

        assert result["conversation"].mode == Mode.GENERIC
        assert result["reply"] == "Lời khuyên của y tá."
        chat.complete.assert_called_once()
        assert len(log.list_by_user("u1")) == 1

    def test_empty_model_reply_is_replaced(self):
        agent, _, _ = _build(chat=_make_client("   "))
        result = _turn(agent, Conversation(user_id="u1"), "xin chào")
        assert result["reply"] == NO_REPLY_PLACEHOLDER
        assert result["conversation"].messages[-1].content == NO_REPLY_PLACEHOLDER


# ── TestExactlyOneReply ──────────────────────────────────────────────


class TestExactlyOneReply:
    @pytest.mark.parametrize(
        "conversation_factory, text, wants_doctor",
        [
            (lambda: Conversation(user_id="u1"), "xin chào", False),
            (lambda: Conversation(user_id="u1"), "tôi muốn khám tim", True),
            (_pending, "có", False),
            (_pending, "không", False),
            (_pending, "tôi bị sốt", False),
            (
                lambda: Conversation(
                    user_id="u1", mode=Mode.DOCTOR_ACTIVE, assigned_doctor=CARDIO,
                ),
                "cảm ơn bác sĩ",
                False,
            ),
        ],
    )
    def test_one_assistant_message_per_turn(self, conversation_factory, text, wants_doctor):
        agent, _, _ = _build(wants_doctor=wants_doctor)
        result = _turn(agent, conversation_factory(), text)

        messages = result["conversation"].messages
        assert [m.role for m in messages] == [Role.USER, Role.ASSISTANT]
        assert messages[-1].content == result["reply"]

    def test_input_conversation_is_not_mutated_by_nodes(self):
        agent, _, _ = _build()
        convo = Conversation(user_id="u1")
        result = _turn(agent, convo, "xin chào")
        assert len(convo.messages) == 1
        assert len(result["conversation"].messages) == 2
