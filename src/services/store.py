"""Thread-safe in-memory stores for conversations, doctors and triage records.

Design decisions
────────────────
• **Document semantics**: ``ConversationStore`` keeps deep copies and hands
  out deep copies, so a conversation mutated by a request is only visible to
  others once it is saved.  There is no versioning: concurrent saves of the
  same id are last-write-wins.
• **threading.Lock** per store, since FastAPI runs the blocking service
  calls on a thread pool.
• **OrderedDict** keeps insertion order, which gives the "first doctor for a
  specialty" and "newest first" listings without a separate index.
• Purely ephemeral: data is lost on process restart.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict

from src.models import Conversation, Doctor, Mode, Specialty, TriageRecord

logger = logging.getLogger(__name__)

DEFAULT_DOCTORS: list[Doctor] = [
    Doctor(name="BS. Nguyễn Văn An", specialty=Specialty.CARDIOLOGY,
           hospital="Bệnh viện Tim Hà Nội", years_experience=15),
    Doctor(name="BS. Trần Thị Bình", specialty=Specialty.DERMATOLOGY,
           hospital="Bệnh viện Da liễu Trung ương", years_experience=9),
    Doctor(name="BS. Lê Minh Châu", specialty=Specialty.ENT,
           hospital="Bệnh viện Tai Mũi Họng Trung ương", years_experience=11),
    Doctor(name="BS. Phạm Quốc Dũng", specialty=Specialty.GENERAL_MEDICINE,
           hospital="Bệnh viện Bạch Mai", years_experience=20),
]


class ConversationStore:
    def __init__(self) -> None:
        self._store: OrderedDict[str, Conversation] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            conversation = self._store.get(conversation_id)
            return conversation.model_copy(deep=True) if conversation else None

    def save(self, conversation: Conversation) -> None:
        with self._lock:
            self._store[conversation.id] = conversation.model_copy(deep=True)

    def delete(self, conversation_id: str) -> bool:
        """Remove a conversation.  Returns ``True`` if it existed."""
        with self._lock:
            return self._store.pop(conversation_id, None) is not None

    def list_by_user(self, user_id: str) -> list[Conversation]:
        """Every conversation owned by *user_id*, newest first."""
        with self._lock:
            owned = [c.model_copy(deep=True) for c in self._store.values() if c.user_id == user_id]
        # stable sort: ties keep reverse insertion order
        owned.reverse()
        owned.sort(key=lambda c: c.created_at, reverse=True)
        return owned

    def list_doctor_conversations(self, user_id: str) -> list[Conversation]:
        """The user's conversations in doctor mode, newest first."""
        return [c for c in self.list_by_user(user_id) if c.mode == Mode.DOCTOR_ACTIVE]

    def delete_empty(self) -> int:
        """Purge every conversation without messages.  Returns count removed."""
        with self._lock:
            empty = [cid for cid, c in self._store.items() if c.is_empty]
            for cid in empty:
                del self._store[cid]
        if empty:
            logger.debug("Purged %d empty conversation(s)", len(empty))
        return len(empty)

    def __len__(self) -> int:
        return len(self._store)


class DoctorDirectory:
    def __init__(self, doctors: list[Doctor] | None = None) -> None:
        self._doctors: list[Doctor] = list(doctors or [])
        self._lock = threading.Lock()

    def add(self, doctor: Doctor) -> None:
        with self._lock:
            self._doctors.append(doctor)

    def find_by_specialty(self, specialty: str) -> Doctor | None:
        """First doctor registered for *specialty*, or ``None``."""
        with self._lock:
            for doctor in self._doctors:
                if doctor.specialty == specialty:
                    return doctor.model_copy()
        return None

    def find_any(self) -> Doctor | None:
        with self._lock:
            return self._doctors[0].model_copy() if self._doctors else None

    def count(self) -> int:
        return len(self._doctors)

    def seed_defaults(self) -> int:
        """Register ``DEFAULT_DOCTORS`` if the directory is empty.  Returns count added."""
        with self._lock:
            if self._doctors:
                return 0
            self._doctors.extend(d.model_copy() for d in DEFAULT_DOCTORS)
            added = len(self._doctors)
        logger.info("Seeded %d default doctors", added)
        return added


class TriageLog:
    """Append-only audit log of triage classifications."""

    def __init__(self) -> None:
        self._records: list[TriageRecord] = []
        self._lock = threading.Lock()

    def append(self, record: TriageRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list_by_user(self, user_id: str) -> list[TriageRecord]:
        """The user's triage records, newest first."""
        with self._lock:
            owned = [r for r in self._records if r.user_id == user_id]
        owned.reverse()
        owned.sort(key=lambda r: r.timestamp, reverse=True)
        return owned
