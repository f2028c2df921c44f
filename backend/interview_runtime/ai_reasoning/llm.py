import asyncio
import io
import logging

from openai import AsyncOpenAI

from runtime_core.config import MODEL_NAME, OPENAI_API_KEY, REPORT_MODEL, TRANSCRIBE_MODEL

logger = logging.getLogger("interview_runtime.ai_reasoning.llm")

_client: AsyncOpenAI | None = None


def llm_available() -> bool:
    return bool(OPENAI_API_KEY) or _client is not None


def get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        _client = AsyncOpenAI(api_key=OPENAI_API_KEY or None)
    return _client


def set_client(client: AsyncOpenAI | None) -> None:
    global _client
    _client = client


async def call_llm(
    prompt: str,
    timeout_sec: float = 20.0,
    retries: int = 2,
    model: str | None = None,
) -> str:
    """
    Sends a JSON-scoring prompt and returns the raw text response.
    Returns "{}" after the last failed attempt; the caller parses.
    """
    if not str(prompt or "").strip():
        return "{}"

    last_error: Exception | None = None
    for attempt in range(max(1, retries + 1)):
        try:
            response = await asyncio.wait_for(
                get_client().chat.completions.create(
                    model=model or REPORT_MODEL,
                    messages=[
                        {
                            "role": "system",
                            "content": "You are a strict JSON generator. Output JSON only."
                        },
                        {
                            "role": "user",
                            "content": prompt
                        }
                    ],
                    temperature=0.2,
                ),
                timeout=timeout_sec,
            )
            message = response.choices[0].message.content
            return str(message or "{}").strip() or "{}"
        except asyncio.TimeoutError as exc:
            last_error = exc
            logger.warning("call_llm timeout | attempt=%s", attempt + 1)
        except Exception as exc:
            last_error = exc
            logger.warning("call_llm failure | attempt=%s err=%s", attempt + 1, exc)

        if attempt < retries:
            await asyncio.sleep(0.35 * (attempt + 1))

    logger.warning("call_llm fallback activated | err=%s", last_error)
    return "{}"


async def call_chat(
    messages: list[dict],
    timeout_sec: float = 15.0,
    retries: int = 1,
    model: str | None = None,
    temperature: float = 0.6,
) -> str:
    """
    One interviewer chat turn. Raises the last error when every attempt
    fails so the route can answer 502 and the session falls back locally.
    """
    last_error: Exception | None = None
    for attempt in range(max(1, retries + 1)):
        try:
            response = await asyncio.wait_for(
                get_client().chat.completions.create(
                    model=model or MODEL_NAME,
                    messages=messages,
                    temperature=temperature,
                ),
                timeout=timeout_sec,
            )
            return str(response.choices[0].message.content or "").strip()
        except asyncio.TimeoutError as exc:
            last_error = exc
            logger.warning("call_chat timeout | attempt=%s", attempt + 1)
        except Exception as exc:
            last_error = exc
            logger.warning("call_chat failure | attempt=%s err=%s", attempt + 1, exc)

        if attempt < retries:
            await asyncio.sleep(0.35 * (attempt + 1))

    raise RuntimeError(f"chat completion failed: {last_error}")


async def transcribe_audio(
    payload: bytes,
    filename: str = "segment.webm",
    timeout_sec: float = 20.0,
) -> str:
    """Speech-to-text for one relayed audio segment."""
    buffer = io.BytesIO(payload)
    buffer.name = filename or "segment.webm"
    response = await asyncio.wait_for(
        get_client().audio.transcriptions.create(model=TRANSCRIBE_MODEL, file=buffer),
        timeout=timeout_sec,
    )
    return str(getattr(response, "text", "") or "").strip()
