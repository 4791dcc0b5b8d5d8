"""Extract a JSON object from free-form LLM output."""

import json
import re
from typing import Any

from tether.exceptions import SynthesisError


def parse_json_object(raw: str) -> dict[str, Any]:
    """Extract the JSON dict from an LLM response string.

    Tries four strategies in order:
      1. Direct json.loads on the stripped string.
      2. Extract content from ```json ... ``` fences.
      3. Extract content from ``` ... ``` fences (no language tag).
      4. Find the first {...} block in free-form prose.

    Raises:
        SynthesisError: if no valid JSON dict is found.
    """
    text = (raw or "").strip()
    if not text:
        raise SynthesisError("LLM returned an empty response.")

    candidates = [text]
    m = re.search(r"```json\s*([\s\S]+?)\s*```", text)
    if m:
        candidates.append(m.group(1).strip())
    m = re.search(r"```\s*([\s\S]+?)\s*```", text)
    if m:
        candidates.append(m.group(1).strip())
    m = re.search(r"\{[\s\S]+\}", text)
    if m:
        candidates.append(m.group(0))

    for candidate in candidates:
        try:
            obj = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(obj, dict):
            return obj

    raise SynthesisError(f"LLM response does not contain a JSON object: {text[:200]!r}")
