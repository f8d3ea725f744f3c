"""Shared test fixtures for the Mediverse test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest

NURSE_REPLY = "Bạn nên nghỉ ngơi, uống nhiều nước và theo dõi thêm nhé."


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    Test modules are imported after this hook, so config.py won't fail on
    module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("METRICS_ENABLED", "false")


@pytest.fixture
def chat_client():
    """Completion stub for nurse / doctor replies."""
    client = MagicMock()
    client.complete.return_value = NURSE_REPLY
    return client


@pytest.fixture
def classifier_client():
    """Completion stub for the doctor-intent check (answers "no" by default)."""
    client = MagicMock()
    client.complete.return_value = "no"
    return client


@pytest.fixture
def doctors():
    from src.services.store import DoctorDirectory

    directory = DoctorDirectory()
    directory.seed_defaults()
    return directory


@pytest.fixture
def service(chat_client, classifier_client, doctors):
    from src.services.conversations import ConversationService

    return ConversationService(
        chat_client=chat_client,
        classifier_client=classifier_client,
        doctors=doctors,
    )
