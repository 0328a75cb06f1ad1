# src/task_arbor/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the LLM client checks the key lazily).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "ARBOR"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- LLM (OpenAI-compatible) ----
    api_key: str | None
    base_url: str
    planner_models: list[str]
    generation_models: list[str]
    utility_models: list[str]
    connect_timeout_seconds: float
    read_timeout_seconds: float

    # ---- Local data paths ----
    data_dir: Path
    work_dir: Path
    log_dir: Path
    tasks_file: str

    # ---- Scheduling ----
    max_iterations: int
    default_extension: str

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "task-arbor") or "task-arbor"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        base_url = _first_env(_k("OPENAI_BASE_URL"), "OPENAI_BASE_URL", default="") or ""

        # Planning and generation default to the stronger model; the cheap
        # utility model answers file-relevance, save-location and evaluation queries.
        planner_models = _env_list(_k("PLANNER_MODELS"), ["gpt-4o-mini"])
        generation_models = _env_list(_k("GENERATION_MODELS"), planner_models)
        utility_models = _env_list(_k("UTILITY_MODELS"), ["gpt-4o-mini"])

        connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 120.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/arbor"))
        work_dir = _env_path(_k("WORK_DIR"), data_dir / "work")
        log_dir = _env_path(_k("LOG_DIR"), data_dir)
        tasks_file = _env(_k("TASKS_FILE"), "tasks.json").strip() or "tasks.json"

        max_iterations = max(1, _env_int(_k("MAX_ITERATIONS"), 200))
        default_extension = _env(_k("DEFAULT_EXTENSION"), ".md").strip() or ".md"
        if not default_extension.startswith("."):
            default_extension = "." + default_extension

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_key=api_key,
            base_url=base_url,
            planner_models=planner_models,
            generation_models=generation_models,
            utility_models=utility_models,
            connect_timeout_seconds=connect_timeout,
            read_timeout_seconds=max(read_timeout, connect_timeout),
            data_dir=data_dir,
            work_dir=work_dir,
            log_dir=log_dir,
            tasks_file=tasks_file,
            max_iterations=max_iterations,
            default_extension=default_extension,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading .env on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
