"""Rule-based specialty matching and triage recording.

``SPECIALTY_RULES`` is evaluated top to bottom and the first rule with a
keyword contained in the text wins, so the order is part of the contract:
text mentioning both "tim" and "da" is Cardiology.
"""

from __future__ import annotations

import logging
import unicodedata

from src.models import Doctor, Specialty, TriageRecord
from src.services.metrics import metrics
from src.services.store import DoctorDirectory, TriageLog

logger = logging.getLogger(__name__)

SPECIALTY_RULES: list[tuple[tuple[str, ...], Specialty]] = [
    (("tim", "huyết áp"), Specialty.CARDIOLOGY),
    (("da", "mụn"), Specialty.DERMATOLOGY),
    (("tai", "mũi", "họng"), Specialty.ENT),
]
DEFAULT_SPECIALTY = Specialty.GENERAL_MEDICINE

PLACEHOLDER_DOCTOR_NAME = "Chưa có bác sĩ trong hệ thống"
PLACEHOLDER_HOSPITAL = "Vui lòng đến bệnh viện gần nhất"


def normalize_text(text: str) -> str:
    """Lower-case and NFC-compose so keyword checks see one spelling of each letter."""
    return unicodedata.normalize("NFC", text or "").lower()


def contains_any(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


def match_specialty(text: str) -> Specialty:
    lowered = normalize_text(text)
    for keywords, specialty in SPECIALTY_RULES:
        if contains_any(lowered, keywords):
            return specialty
    return DEFAULT_SPECIALTY


def placeholder_doctor(specialty: Specialty) -> Doctor:
    """Stand-in returned by a stand-alone triage when no doctor matches."""
    return Doctor(
        name=PLACEHOLDER_DOCTOR_NAME,
        specialty=specialty,
        hospital=PLACEHOLDER_HOSPITAL,
        years_experience=None,
    )


def triage_symptoms(
    user_id: str,
    symptoms: str,
    *,
    triage_log: TriageLog,
    doctors: DoctorDirectory,
) -> tuple[TriageRecord, Doctor | None]:
    """Classify *symptoms*, log the triage record and look up a matching doctor.

    Returns the stored record and the doctor found for the suggested
    specialty, or ``None`` when the directory has nobody for it.
    """
    specialty = match_specialty(symptoms)
    record = TriageRecord(user_id=user_id, symptoms=symptoms, suggested_specialty=specialty)
    triage_log.append(record)

    doctor = doctors.find_by_specialty(specialty)
    metrics.record_triage(specialty, doctor_found=doctor is not None)
    logger.info(
        "Triage for user %s: %s (doctor: %s)",
        user_id, specialty, doctor.name if doctor else "none",
    )
    return record, doctor
