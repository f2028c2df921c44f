import json
import re
from dataclasses import dataclass


@dataclass
class ParseResult:
    ok: bool
    data: dict | None = None
    method: str = ""
    error: str = ""


def _as_dict(text: str) -> dict | None:
    parsed = json.loads(text)
    return parsed if isinstance(parsed, dict) else None


def extract_json_dict(text: str) -> ParseResult:
    """Whole text, then a fenced ```json block, then first '{' to last '}'."""
    text = str(text or "").strip()
    if not text:
        return ParseResult(ok=False, error="empty response")

    try:
        parsed = _as_dict(text)
        if parsed is not None:
            return ParseResult(ok=True, data=parsed, method="direct")
    except ValueError:
        pass

    fenced = re.search(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", text, re.IGNORECASE)
    if fenced:
        try:
            parsed = _as_dict(fenced.group(1))
            if parsed is not None:
                return ParseResult(ok=True, data=parsed, method="fenced")
        except ValueError:
            pass

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = _as_dict(text[start:end + 1])
            if parsed is not None:
                return ParseResult(ok=True, data=parsed, method="braces")
        except ValueError as exc:
            return ParseResult(ok=False, error=f"invalid json: {exc}")

    return ParseResult(ok=False, error="no json object found")
