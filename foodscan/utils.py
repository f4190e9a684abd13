"""Utility functions."""

import json
import re


def normalize_word(word: str) -> str:
    """Lowercase + trim. Every word lookup goes through this."""
    return (word or "").lower().strip()


def extract_json(text: str) -> dict:
    """
    Clean Markdown, ```json, comments.
    Return Json object.
    """
    if not text:
        raise ValueError("Empty model output")

    # Direct attempt first: json_object replies are usually clean
    try:
        parsed = json.loads(text.strip())
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    # Unwrap ```json ... ``` fences
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, flags=re.S)
    if fenced:
        text = fenced.group(1)

    # Find first { and last }
    start = text.find("{")
    end = text.rfind("}")

    if start == -1 or end == -1:
        raise ValueError("No JSON object detected")

    cleaned = text[start:end+1]

    parsed = json.loads(cleaned)
    if not isinstance(parsed, dict):
        raise ValueError("Model output is not a JSON object")
    return parsed
