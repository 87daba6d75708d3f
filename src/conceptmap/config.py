from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    # Default DB path used by the web app and CLI defaults.
    db_path: str = os.getenv("CONCEPTMAP_DB_PATH", "./data/conceptmap.db")
    upload_dir: str = os.getenv("CONCEPTMAP_UPLOAD_DIR", "./data/uploads")

    # Ollama
    ollama_base_url: str = os.getenv("CONCEPTMAP_OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("CONCEPTMAP_OLLAMA_MODEL", "llama3.2:1b")
    ollama_temperature: float = float(os.getenv("CONCEPTMAP_OLLAMA_TEMPERATURE", "0.2"))
    extract_timeout_s: float = float(os.getenv("CONCEPTMAP_EXTRACT_TIMEOUT_S", "120"))
    max_text_chars: int = int(os.getenv("CONCEPTMAP_MAX_TEXT_CHARS", "60000"))

    # Resolver tolerance as a distance in [0, 1]; 0 accepts exact matches only.
    match_distance: float = float(os.getenv("CONCEPTMAP_MATCH_DISTANCE", "0.4"))

    workers: int = int(os.getenv("CONCEPTMAP_WORKERS", "2"))
