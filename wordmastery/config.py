"""Engine configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"


@dataclass(frozen=True)
class Settings:
    # --- Database (global word stats snapshot) ---
    database_url: str = os.getenv(
        "WORDMASTERY_DB_URL", f"sqlite+aiosqlite:///{DATA_DIR / 'wordmastery.db'}"
    )

    # --- OpenAI Realtime (streaming transcription transport) ---
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_realtime_url: str = os.getenv(
        "OPENAI_REALTIME_URL", "wss://api.openai.com/v1/realtime?intent=transcription"
    )
    openai_realtime_model: str = os.getenv("OPENAI_REALTIME_MODEL", "gpt-4o-transcribe")
    realtime_commit_interval: float = float(os.getenv("REALTIME_COMMIT_INTERVAL", "2.0"))

    # --- Session scheduling ---
    default_mastery_threshold: int = int(os.getenv("MASTERY_THRESHOLD", "7"))
    reinsert_min_offset: int = 2  # 3rd position from the front
    reinsert_max_offset: int = 4  # 5th position from the front

    # --- Spoken-answer matching ---
    fuzzy_tolerance_ratio: float = 0.35
    min_edit_tolerance: int = 1

    # --- Continuous listening ---
    restart_delay_seconds: float = float(os.getenv("VOICE_RESTART_DELAY", "0.2"))

    # --- Leverage scoring ---
    leverage_scale: int = 1000


settings = Settings()

# Ensure the default database directory exists
DATA_DIR.mkdir(parents=True, exist_ok=True)
