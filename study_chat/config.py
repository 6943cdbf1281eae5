"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "study_chat.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_MODEL = "google/gemini-2.5-flash-lite"
DEFAULT_CONVERSATION_TITLE = "New chat"
TITLE_MAX_LENGTH = 40
DEFAULT_GATEWAY_TIMEOUT = 60.0

# id, display name, description, category
AVAILABLE_MODELS: tuple[tuple[str, str, str, str], ...] = (
    ("google/gemini-2.5-flash-lite", "Gemini Flash Lite", "Fastest & cheapest model", "gemini"),
    ("google/gemini-3-flash-preview", "Gemini 3 Flash", "Fast and efficient for everyday tasks", "gemini"),
    ("google/gemini-2.5-flash", "Gemini 2.5 Flash", "Balanced speed and capability", "gemini"),
    ("google/gemini-3-pro-preview", "Gemini 3 Pro", "Most capable model for complex tasks", "gemini"),
    ("google/gemini-2.5-pro", "Gemini 2.5 Pro", "Advanced reasoning and multimodal", "gemini"),
    ("openai/gpt-5-nano", "GPT-5 Nano", "Efficient and fast", "gpt"),
    ("openai/gpt-5-mini", "GPT-5 Mini", "Fast with strong reasoning", "gpt"),
    ("openai/gpt-5", "GPT-5", "Powerful all-rounder model", "gpt"),
)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_gateway_url(env_value: str | None = None) -> str:
    """Resolve the chat gateway endpoint.

    An explicit value (or CHAT_GATEWAY_URL) wins; otherwise the URL is derived
    from SUPABASE_URL, where the chat edge function lives.
    """
    url = env_value or os.getenv("CHAT_GATEWAY_URL")
    if url:
        return url

    supabase_url = os.getenv("SUPABASE_URL")
    if not supabase_url:
        raise ValueError("CHAT_GATEWAY_URL or SUPABASE_URL environment variable not set")
    return f"{supabase_url.rstrip('/')}/functions/v1/chat"


def resolve_gateway_timeout(env_value: str | None = None) -> float:
    """Resolve CHAT_GATEWAY_TIMEOUT (seconds)."""
    raw = env_value or os.getenv("CHAT_GATEWAY_TIMEOUT")
    if not raw:
        return DEFAULT_GATEWAY_TIMEOUT
    return float(raw)


def is_known_model(model: str) -> bool:
    return any(entry[0] == model for entry in AVAILABLE_MODELS)
