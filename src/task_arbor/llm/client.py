# src/task_arbor/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..config import Settings

logger = logging.getLogger(__name__)

# A model that answered 404 is skipped for this long (seconds).
_BAD_MODEL_COOLDOWN = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def _close_stream(stream: Any) -> None:
    close = getattr(stream, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.debug("LLM: stream close failed", exc_info=True)


class OpenAIChatClient:
    """
    OpenAI-compatible chat client with ordered model fallback.

    Behavior:
    - Tries models in the configured order.
    - 404 (model not available) -> remember it for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    - SDK retries are disabled so fallback happens quickly.
    """

    def __init__(self, settings: Settings, models: list[str], *, client: OpenAI | None = None) -> None:
        self._models = [m.strip() for m in models if m and m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set ARBOR_PLANNER_MODELS in your .env.")

        if client is None:
            if not settings.api_key or not settings.api_key.strip():
                raise RuntimeError("LLM API key is not set. Set ARBOR_OPENAI_API_KEY in your .env.")
            timeout = httpx.Timeout(
                connect=settings.connect_timeout_seconds,
                read=settings.read_timeout_seconds,
                write=30.0,
                pool=settings.connect_timeout_seconds,
            )
            client = OpenAI(
                api_key=settings.api_key,
                base_url=settings.base_url or None,
                timeout=timeout,
                max_retries=0,
            )
        self._client = client
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    def stream_chat(self, messages: list[dict[str, str]], system_prompt: str) -> Iterable[str]:
        """Stream the response text in chunks from the first model that produces content."""
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.debug("LLM: trying model=%s", model)
            t0 = time.monotonic()
            stream = None
            used_any = False

            try:
                stream = self._client.chat.completions.create(
                    model=model,
                    stream=True,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                )

                for chunk in stream:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    content = getattr(delta, "content", None) if delta is not None else None
                    if content:
                        if not used_any:
                            logger.debug("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    logger.debug("LLM: completed with model=%s (%.2fs)", model, time.monotonic() - t0)
                    return

                last_error = RuntimeError(f"Model returned no content: {model}")

            except Exception as e:
                # Once content was yielded a switch would splice two answers together.
                if used_any:
                    raise
                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError("LLM authentication failed. Check ARBOR_OPENAI_API_KEY.") from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + _BAD_MODEL_COOLDOWN
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            finally:
                if stream is not None:
                    _close_stream(stream)

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
