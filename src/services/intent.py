"""Doctor-intent classifier.

Asks the classification model whether the user wants to see a doctor.
Any answer that does not contain ``yes`` (including an empty or malformed
one) counts as *no*.  Failures of the completion call itself are not
caught here: they propagate to the conversation service and abort the turn.
"""

from __future__ import annotations

import logging

from src.prompts import build_intent_prompt
from src.services.completion import TextCompletionClient

logger = logging.getLogger(__name__)


class IntentClassifier:
    def __init__(self, client: TextCompletionClient):
        self._client = client

    def classify_wants_doctor(self, text: str) -> bool:
        answer = self._client.complete(build_intent_prompt(text))
        normalized = (answer or "").strip().lower()
        wants_doctor = "yes" in normalized
        logger.debug("Doctor intent: %s (raw: %r)", wants_doctor, normalized[:50])
        return wants_doctor
