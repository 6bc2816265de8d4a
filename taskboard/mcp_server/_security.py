"""Security: injection detection, output tagging, input validation."""

from __future__ import annotations

import re

from taskboard import CliError

_INJECTION_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"^(system|assistant|user)\s*:", re.IGNORECASE | re.MULTILINE),
        "role label",
    ),
    (
        re.compile(
            r"<\s*/?\s*(system|instruction|admin|prompt|tool_call|function_call)",
            re.IGNORECASE,
        ),
        "XML-like directive tag",
    ),
    (
        re.compile(
            r"ignore\s+(all\s+)?(previous|prior|above)\s+(instructions|prompts|rules)",
            re.IGNORECASE,
        ),
        "override directive",
    ),
    (
        re.compile(
            r"forget\s+(your|all|the)\s+(rules|instructions|training|guidelines)",
            re.IGNORECASE,
        ),
        "forget directive",
    ),
    (
        re.compile(
            r"you\s+are\s+now\s+(in\s+)?(admin|root|debug|developer|unrestricted|jailbreak)",
            re.IGNORECASE,
        ),
        "mode switching",
    ),
]


def _check_injection(text: str) -> list[str]:
    """Check text for common prompt injection patterns.

    Returns list of matched pattern descriptions (empty if clean).
    Short strings (< 10 chars) are skipped.
    """
    if len(text) < 10:
        return []
    return [desc for pattern, desc in _INJECTION_PATTERNS if pattern.search(text)]


def _tag_user_text(text: str | None) -> str | None:
    """Wrap user-authored text in [USER_DATA] boundary markers."""
    if text is None:
        return None
    return f"[USER_DATA]{text}[/USER_DATA]"


_USER_TEXT_FIELDS = ("title", "content", "t", "c")
_USER_LIST_FIELDS = ("subtasks", "sub")


def _sanitize_card(card: dict) -> dict:
    """Tag user-editable card fields and add _safety_warnings if injection detected.

    Works on both the full card shape and the abbreviated compact shape.
    """
    out = dict(card)
    warnings: list[str] = []
    for field in _USER_TEXT_FIELDS:
        if isinstance(out.get(field), str):
            for desc in _check_injection(out[field]):
                warnings.append(f"{field}: {desc}")
            out[field] = _tag_user_text(out[field])
    for field in _USER_LIST_FIELDS:
        if isinstance(out.get(field), list):
            tagged = []
            for item in out[field]:
                if isinstance(item, str):
                    for desc in _check_injection(item):
                        warnings.append(f"{field}: {desc}")
                    item = _tag_user_text(item)
                tagged.append(item)
            out[field] = tagged
    if warnings:
        out["_safety_warnings"] = warnings
    return out


def _sanitize_board(data: dict) -> dict:
    """Tag user text in any board view (full, compact, cards-only) or card list."""
    if not isinstance(data, dict):
        return data
    out = dict(data)
    if isinstance(out.get("cards"), list):
        out["cards"] = [_sanitize_card(c) if isinstance(c, dict) else c for c in out["cards"]]
    if isinstance(out.get("card"), dict):
        out["card"] = _sanitize_card(out["card"])
    for key in ("projectName", "name"):
        if isinstance(out.get(key), str):
            out[key] = _tag_user_text(out[key])
    if isinstance(out.get("next-steps"), list):
        out["next-steps"] = [_tag_user_text(s) if isinstance(s, str) else s for s in out["next-steps"]]
    return out


_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INPUT_LIMITS = {
    "title": 500,
    "content": 50_000,
    "subtask": 500,
    "tag": 100,
    "name": 200,
    "step": 1000,
}


def _validate_input(text: str, field: str) -> str:
    """Strip control characters and enforce length limits.

    Raises CliError if text is not a string or exceeds the field limit.
    """
    if not isinstance(text, str):
        raise CliError(f"[ERROR] {field} must be a string")
    cleaned = _CONTROL_RE.sub("", text)
    limit = _INPUT_LIMITS.get(field, 50_000)
    if len(cleaned) > limit:
        raise CliError(f"[ERROR] {field} exceeds maximum length of {limit} characters")
    return cleaned


def _validate_card_data(card_data):
    """Clean the user-text fields of a card payload (dict); other keys pass through.

    JSON strings are left alone and validated by the engine after parsing.
    """
    if not isinstance(card_data, dict):
        return card_data
    out = dict(card_data)
    for field in ("title", "content"):
        if isinstance(out.get(field), str):
            out[field] = _validate_input(out[field], field)
    if isinstance(out.get("subtasks"), list):
        out["subtasks"] = [
            _validate_input(s, "subtask") if isinstance(s, str) else s for s in out["subtasks"]
        ]
    if isinstance(out.get("tags"), list):
        out["tags"] = [_validate_input(t, "tag") if isinstance(t, str) else t for t in out["tags"]]
    return out
