"""Validates that an API response matches the config's declared intent.

Cheap structural checks run first (empty body, error-only payload); only then
is the LLM asked whether the data fulfils the instruction.
"""

import json
import logging
from typing import Any, Optional

from tether.config import TetherConfig, config as default_config
from tether.exceptions import SynthesisError
from tether.llm.client import LLMClient
from tether.llm.parsing import parse_json_object
from tether.llm.prompts import EVALUATE_RESPONSE
from tether.types import ValidationVerdict

logger = logging.getLogger(__name__)

_ERROR_KEYS = frozenset({"error", "errors", "error_description", "fault", "message"})
_RESPONSE_CHARS = 8000


class LLMResponseValidator:
    """Judges whether a response satisfies the instruction it was fetched for."""

    def __init__(self, llm_client: Optional[LLMClient] = None, config: Optional[TetherConfig] = None) -> None:
        self._config = config or default_config
        self._llm = llm_client or LLMClient(config=self._config)

    def _structural_check(self, data: Any) -> Optional[str]:
        """Return a failure reason, or None when the data looks like real content."""
        if data is None or data == "":
            return "Response is empty"
        if isinstance(data, (list, dict)) and len(data) == 0:
            return "Response is an empty collection"
        if isinstance(data, dict) and set(data.keys()) <= _ERROR_KEYS:
            return "Response only contains an error payload"
        return None

    async def validate(self, data: Any, schema: Optional[dict], instruction: str) -> ValidationVerdict:
        """Validate response data.

        Checks:
        1. Data is not None/empty and is not just an error envelope
        2. With no instruction there is nothing more to judge: pass
        3. LLM judgment of instruction fit (schema given as context only)

        Returns:
            ValidationVerdict(success, short_reason). short_reason is "" if valid.
        """
        reason = self._structural_check(data)
        if reason:
            return ValidationVerdict(success=False, short_reason=reason)

        if not instruction:
            return ValidationVerdict(success=True)

        user_payload = json.dumps({
            "instruction": instruction,
            "response_schema": schema,
            "response": json.dumps(data, default=str)[:_RESPONSE_CHARS],
        }, default=str)
        response = await self._llm.complete(
            messages=[
                {"role": "system", "content": EVALUATE_RESPONSE.format()},
                {"role": "user", "content": user_payload},
            ],
            response_format={"type": "json_object"},
        )
        try:
            verdict = parse_json_object(response["content"])
        except SynthesisError as exc:
            # Unparseable verdicts pass.
            logger.warning(f"[Validator] Could not parse verdict, accepting response: {exc}")
            return ValidationVerdict(success=True)

        success = bool(verdict.get("success", False))
        return ValidationVerdict(
            success=success,
            short_reason="" if success else str(verdict.get("reason") or "Response does not match instruction"),
        )
