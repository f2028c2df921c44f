# ----------- Interviewer Prompt -----------

INTERVIEWER_PREAMBLE = (
    "You are an expert, friendly interview bot. Keep responses concise (1-3 sentences) "
    "and ask one question at a time."
)

INTERVIEWER_GUIDELINES = (
    "Guidelines: be supportive, avoid jargon unless asked, stay on topic, "
    "and ask for specifics with examples."
)

ICE_BREAKER_PROMPT = (
    "Start the interview with ONE brief ice-breaker question to build rapport "
    "(e.g., 'How are you and what is your current role?'). Do not use this in subsequent prompts."
)

NEVER_END_RULE = (
    "Never end, conclude, or announce completion of the interview on your own; "
    "the session clock decides when the interview is over."
)

QUESTIONS_PER_SKILL = 5


def time_guidance(remaining_seconds: int | None, total_minutes: int | None = None) -> list[str]:
    if remaining_seconds is None or remaining_seconds < 0:
        return []
    total = f" (total: {total_minutes}m)" if total_minutes else ""
    lines = [f"Time: {remaining_seconds // 60}m {remaining_seconds % 60}s remaining{total}."]
    if remaining_seconds <= 60:
        lines.append(
            "Remaining time is <= 60s: ask ONE concise closing question, summarize a key takeaway, and conclude."
        )
    else:
        lines.append("Keep questions focused and sized to fit the remaining time.")
    return lines


def skill_focus(skills: list[str], user_turns: int) -> tuple[str, int, int] | None:
    """(skill, index, questions left for it); the focus moves every five candidate answers."""
    if not skills:
        return None
    index = (max(0, user_turns) // QUESTIONS_PER_SKILL) % len(skills)
    return skills[index], index, QUESTIONS_PER_SKILL - (max(0, user_turns) % QUESTIONS_PER_SKILL)


def build_interviewer_system_prompt(
    title: str = "",
    context: str = "",
    interviewer_role: str = "",
    remaining_seconds: int | None = None,
    total_minutes: int | None = None,
    skills: list[str] | None = None,
    user_turns: int = 0,
) -> str:
    lines = [INTERVIEWER_PREAMBLE]
    if title:
        lines.append(f"Interview Title: {title}")
    if context:
        lines.append(f"Context: {context}")
    if interviewer_role:
        lines.append(f"Interviewer Role: {interviewer_role}")

    focus = skill_focus(list(skills or []), user_turns)
    if focus is not None:
        skill, index, remaining = focus
        lines.append("Interview Report Skill Area (current focus):")
        lines.append(
            f"Focus now on: {skill} (skill {index + 1} of {len(skills)}). Ask questions to elicit evidence "
            f"for this skill. Remaining questions for this skill: {remaining}."
        )
        lines.append("Do NOT switch skills until the focus line changes.")
    lines.append(NEVER_END_RULE)
    lines.extend(time_guidance(remaining_seconds, total_minutes))
    lines.append(INTERVIEWER_GUIDELINES)
    return "\n".join(lines)
