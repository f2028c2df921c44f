from __future__ import annotations

import logging
import re

from interview_runtime.ai_reasoning.llm import call_chat
from interview_runtime.prompts import ICE_BREAKER_PROMPT, build_interviewer_system_prompt
from runtime_core.logger import log_event

logger = logging.getLogger("interview_runtime.chat_service")

HISTORY_WINDOW = 12

_END_TOKEN = re.compile(r"\bEND_INTERVIEW\b\.?", re.IGNORECASE)
_SENTENCE = re.compile(r"[^.!?\n]+[.!?\n]?")
_ENDING_PHRASES = (
    "end the interview",
    "conclude the interview",
    "concluded the",
    "finish the interview",
    "wrap up the interview",
    "system instruct",
    "system confirms",
)


def clean_history(history) -> list[dict]:
    cleaned: list[dict] = []
    for item in list(history or []):
        if not isinstance(item, dict):
            continue
        role = str(item.get("role") or "").strip().lower()
        content = str(item.get("content") if item.get("content") is not None else item.get("text") or "").strip()
        if role in {"user", "assistant"} and content:
            cleaned.append({"role": role, "content": content})
    return cleaned


def sanitize_reply(text: str) -> str:
    """Drop fabricated end-of-interview tokens and sentences that claim the interview is over."""
    text = _END_TOKEN.sub("", str(text or ""))
    sentences = _SENTENCE.findall(text) or [text]
    kept = [s for s in sentences if not any(phrase in s.lower() for phrase in _ENDING_PHRASES)]
    return re.sub(r"\s+", " ", " ".join(kept)).strip()


def build_chat_messages(
    history: list[dict],
    user_text: str,
    interview: dict | None = None,
    remaining_seconds: int | None = None,
    total_minutes: int | None = None,
    skills: list[str] | None = None,
) -> list[dict]:
    interview = interview or {}
    user_turns = sum(1 for m in history if m["role"] == "user")
    system_prompt = build_interviewer_system_prompt(
        title=str(interview.get("title") or ""),
        context=str(interview.get("context") or ""),
        interviewer_role=str(interview.get("interviewerRole") or ""),
        remaining_seconds=remaining_seconds,
        total_minutes=total_minutes,
        skills=skills,
        user_turns=user_turns,
    )

    messages = [{"role": "system", "content": system_prompt}]
    if not history:
        messages.append({"role": "system", "content": ICE_BREAKER_PROMPT})
    messages.extend(history[-HISTORY_WINDOW:])
    if str(user_text or "").strip():
        messages.append({"role": "user", "content": str(user_text).strip()})
    return messages


async def interviewer_reply(
    history,
    user_text: str,
    interview: dict | None = None,
    remaining_seconds: int | None = None,
    total_minutes: int | None = None,
    skills: list[str] | None = None,
    session_id: str = "",
) -> str:
    """
    One interviewer turn. Empty user text is only valid as the opener
    (no history). Raises when the LLM fails so the caller can degrade.
    """
    turns = clean_history(history)
    if not str(user_text or "").strip() and turns:
        raise ValueError("userText is required")

    messages = build_chat_messages(turns, user_text, interview, remaining_seconds, total_minutes, skills)
    raw = await call_chat(messages)
    reply = sanitize_reply(raw)
    log_event(
        "chat",
        "reply",
        session_id,
        history=turns,
        user_text=user_text,
        reply=reply,
        remaining_seconds=remaining_seconds,
    )
    if not reply:
        raise RuntimeError("empty interviewer reply")
    return reply
