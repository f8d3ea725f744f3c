"""Centralized configuration for the Mediverse triage service.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/mediverse/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable, so the local ``.env`` path keeps working.
    """
    try:
        import boto3  # noqa: PLC0415 optional dependency (``aws`` extra)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/mediverse/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /mediverse/{name} (AWS)."
    )


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes")


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")

# The yes/no doctor-intent check runs on a cheaper, deterministic model
ROUTER_MODEL_NAME: str = os.getenv("ROUTER_MODEL_NAME", "claude-haiku-4-5")

# How many earlier messages the nurse / doctor prompts see (0 = latest only)
CHAT_HISTORY_MESSAGES: int = int(os.getenv("CHAT_HISTORY_MESSAGES", "12"))

# ── Conversations ───────────────────────────────────────────────────
PREVIEW_LENGTH: int = int(os.getenv("PREVIEW_LENGTH", "30"))
RECENT_DOCTORS_LIMIT: int = int(os.getenv("RECENT_DOCTORS_LIMIT", "3"))
PURGE_EMPTY_ON_LIST: bool = _env_flag("PURGE_EMPTY_ON_LIST", True)
SEED_DEFAULT_DOCTORS: bool = _env_flag("SEED_DEFAULT_DOCTORS", True)

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "5000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
