"""
LLM call wrapper and it does:
- Sends conversations to the model provider
- Retries transient failures with backoff
- Maps rejected credentials to a permission fault
- Transcribes out-of-band audio

Main purpose:
Central interface for all model calls (planner and capabilities).
"""


import asyncio
import json
from typing import Optional, Sequence

import httpx

from lumos.core.config import settings
from lumos.core.errors import LLMError, PermissionFault
from lumos.core.logging import get_logger

log = get_logger("llm.router")

TRANSIENT_STATUSES = (429, 500, 502, 503, 504)
BACKOFF_BASE_S = 0.6


def _safe_snippet(text: str, n: int = 400) -> str:
    return (text or "")[:n].replace("\n", "\\n").replace("\r", "\\r")


def _provider() -> str:
    return (settings.LLM_PROVIDER or "").lower().strip()


def _headers() -> dict:
    if not settings.GROQ_API_KEY:
        raise LLMError("Missing GROQ_API_KEY. Put it in your .env")
    return {"Authorization": f"Bearer {settings.GROQ_API_KEY}"}


def _check_status(r: httpx.Response) -> None:
    if r.status_code in (401, 403):
        raise PermissionFault(f"Groq refused access {r.status_code}: {_safe_snippet(r.text)}")
    if r.status_code >= 400:
        raise LLMError(f"Groq error {r.status_code}: {_safe_snippet(r.text)}")


async def _post_with_retry(
    path: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **request_kwargs,
) -> httpx.Response:
    url = f"{settings.GROQ_BASE_URL.rstrip('/')}/{path.lstrip('/')}"
    headers = _headers()
    timeout = httpx.Timeout(settings.LLM_TIMEOUT_S, connect=10.0)
    attempts = max(1, settings.LLM_MAX_RETRIES)

    last_err: Exception | None = None
    for attempt in range(attempts):
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                r = await client.post(url, headers=headers, **request_kwargs)
        except httpx.TransportError as e:
            last_err = e
            backoff = BACKOFF_BASE_S * (2**attempt)
            log.warning(f"Groq call failed: {e}. retrying in {backoff:.1f}s (attempt {attempt+1}/{attempts})")
            await asyncio.sleep(backoff)
            continue

        # Retry transient errors
        if r.status_code in TRANSIENT_STATUSES:
            last_err = LLMError(f"Groq transient {r.status_code}: {_safe_snippet(r.text)}")
            backoff = BACKOFF_BASE_S * (2**attempt)
            log.warning(f"{last_err}. retrying in {backoff:.1f}s (attempt {attempt+1}/{attempts})")
            await asyncio.sleep(backoff)
            continue

        _check_status(r)
        return r

    raise LLMError(f"Groq call failed after retries: {last_err}")


def _mock_chat(messages: Sequence[dict]) -> str:
    last = messages[-1]["content"] if messages else ""
    if "continueFlag" in last:
        return json.dumps({"finalResponse": "Mock response", "continueFlag": False})
    return f"Mock output: {last[:200]}"


async def chat(
    messages: Sequence[dict],
    *,
    system: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Send a chat conversation and return the assistant text.
    messages: [{"role": "user"|"assistant", "content": str}, ...]
    """
    full = [{"role": "system", "content": system}] if system else []
    full.extend({"role": m["role"], "content": m["content"]} for m in messages)

    provider = _provider()
    if provider == "mock":
        return _mock_chat(full)
    if provider != "groq":
        raise LLMError(f"Unsupported LLM_PROVIDER={settings.LLM_PROVIDER}. Use groq or mock.")

    payload = {
        "model": settings.LLM_MODEL,
        "messages": full,
        "temperature": settings.LLM_TEMPERATURE,
        # IMPORTANT: do NOT force JSON mode; the plan loop parses free text itself
    }
    r = await _post_with_retry("chat/completions", json=payload, transport=transport)

    data = r.json()
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        raise LLMError(f"Unexpected Groq response: {_safe_snippet(json.dumps(data))}")


async def complete(
    system: str,
    user: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    return await chat([{"role": "user", "content": user}], system=system, transport=transport)


async def transcribe(
    audio: bytes,
    mime: str = "audio/mpeg",
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    provider = _provider()
    if provider == "mock":
        return f"Mock transcript ({len(audio)} bytes)"
    if provider != "groq":
        raise LLMError(f"Unsupported LLM_PROVIDER={settings.LLM_PROVIDER}. Use groq or mock.")

    ext = mime.split("/")[-1].split(";")[0] or "mp3"
    r = await _post_with_retry(
        "audio/transcriptions",
        data={"model": settings.TRANSCRIPTION_MODEL},
        files={"file": (f"audio.{ext}", audio, mime)},
        transport=transport,
    )
    data = r.json()
    if not isinstance(data, dict) or "text" not in data:
        raise LLMError(f"Unexpected transcription response: {_safe_snippet(r.text)}")
    return data["text"]


def is_configured() -> bool:
    provider = _provider()
    if provider == "mock":
        return True
    return provider == "groq" and bool(settings.GROQ_API_KEY)
