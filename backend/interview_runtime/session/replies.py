def local_reply(user_text: str) -> str:
    """Canned interviewer line used when the chat endpoint is unavailable."""
    lower = str(user_text or "").lower()
    if "hello" in lower or "hi" in lower.split():
        return "Hi! Can you walk me through a recent project?"
    if "experience" in lower:
        return "What was your most impactful contribution?"
    if "react" in lower:
        return "How do you handle state and performance in complex React apps?"
    if "team" in lower:
        return "Describe a time you collaborated to resolve a tough issue."
    return "Got it. Could you elaborate a bit more?"


OPENING_LINE = "Hi! Can you walk me through a recent project?"
