"""LLMConfigSynthesizer — turns call failures into corrected API configs.

The executor hands over the current config, integration documentation, the
payload, credential NAMES (values are never shown to the model), the attempt
index, and the running transcript. The synthesizer returns a new config and
the transcript extended with its own exchange.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from tether.config import TetherConfig, config as default_config
from tether.credentials import sanitize_config
from tether.exceptions import SynthesisError
from tether.llm.client import LLMClient
from tether.llm.parsing import parse_json_object
from tether.llm.prompts import (
    GENERATE_API_CONFIG_SYSTEM, GENERATE_API_CONFIG_USER,
    GENERATE_LOOP_SELECTOR, GENERATE_MAPPING,
)
from tether.types import ApiConfig, SynthesisResult

logger = logging.getLogger(__name__)

# Fields the model is allowed to change. Identity, intent and schema stay fixed.
_SYNTHESIZED_FIELDS = ("url_host", "url_path", "method", "headers", "query_params", "body", "data_path")

_SAMPLE_CHARS = 5000


def _payload_keys(payload: Any) -> str:
    if isinstance(payload, dict):
        return json.dumps(sorted(str(k) for k in payload.keys()))
    if isinstance(payload, list):
        return f"(payload is a list of {len(payload)} items)"
    return "(none)"


def _merge_candidate(config: ApiConfig, candidate: dict[str, Any]) -> ApiConfig:
    """Overlay the synthesized fields onto *config*."""
    update = {k: candidate[k] for k in _SYNTHESIZED_FIELDS if k in candidate}
    if isinstance(update.get("method"), str):
        update["method"] = update["method"].upper()
    if isinstance(update.get("body"), (dict, list)):
        update["body"] = json.dumps(update["body"])
    for key in ("headers", "query_params"):
        if key in update and update[key] is None:
            update[key] = {}
    if isinstance(update.get("headers"), dict):
        update["headers"] = {str(k): str(v) for k, v in update["headers"].items()}
    try:
        return ApiConfig.model_validate({
            **config.model_dump(),
            **update,
            "updated_at": datetime.now(timezone.utc),
        })
    except ValidationError as exc:
        raise SynthesisError(f"Synthesized config is invalid: {exc}")


class LLMConfigSynthesizer:
    """LLM-backed config synthesis, loop-selector and mapping generation.

    Args:
        llm_client: LLMClient instance; a default one is created if omitted.
        config:     TetherConfig instance.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None, config: Optional[TetherConfig] = None) -> None:
        self._config = config or default_config
        self._llm = llm_client or LLMClient(config=self._config)

    async def synthesize(
        self,
        config: ApiConfig,
        documentation: str,
        payload: Any,
        credentials: dict[str, str],
        attempt: int,
        transcript: list[dict[str, Any]],
    ) -> SynthesisResult:
        """Produce a candidate config from the current config and error feedback.

        The system prompt and context message are inserted once, ahead of any
        error feedback already in the transcript. Later attempts reuse them.

        Raises:
            SynthesisError: LLM failure or unusable output.
        """
        messages = list(transcript)
        if not any(m.get("role") == "system" for m in messages):
            safe_config = sanitize_config(config, credentials)
            context = GENERATE_API_CONFIG_USER.format(
                instruction=config.instruction or "(none given)",
                current_config=safe_config.model_dump_json(
                    include=set(_SYNTHESIZED_FIELDS), indent=2
                ),
                payload_keys=_payload_keys(payload),
                credential_keys=json.dumps(sorted((credentials or {}).keys())),
                documentation=(documentation or "(no documentation available)")[: self._config.documentation_max_chars],
                attempt=attempt,
            )
            messages = [
                {"role": "system", "content": GENERATE_API_CONFIG_SYSTEM.format()},
                {"role": "user", "content": context},
                *messages,
            ]
        else:
            messages.append({
                "role": "user",
                "content": f"This is attempt {attempt}. Return the corrected configuration as JSON.",
            })

        response = await self._llm.complete(
            messages=messages, response_format={"type": "json_object"}
        )
        content = response["content"]
        messages.append({"role": "assistant", "content": content})

        candidate = parse_json_object(content)
        new_config = _merge_candidate(config, candidate)
        logger.debug(
            f"[Synthesizer] Attempt {attempt}: {new_config.method.value} "
            f"{new_config.url_host}{new_config.url_path}"
        )
        return SynthesisResult(config=new_config, transcript=messages)

    async def generate_loop_selector(
        self,
        step_id: str,
        instruction: str,
        payload_summary: str,
    ) -> Optional[str]:
        """Ask the model for a JMESPath expression that selects loop items.

        Returns None when the model output carries no usable expression.
        """
        prompt = GENERATE_LOOP_SELECTOR.format(
            step_id=step_id,
            instruction=instruction or "(none given)",
            payload_summary=payload_summary or "(no keys)",
        )
        response = await self._llm.complete(
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
        )
        try:
            expression = parse_json_object(response["content"]).get("expression")
        except SynthesisError as exc:
            logger.warning(f"[Synthesizer] Loop selector generation failed for '{step_id}': {exc}")
            return None
        return expression if isinstance(expression, str) and expression.strip() else None

    async def generate_mapping(
        self,
        schema: Optional[dict],
        data: Any,
        instruction: str,
        previous_error: Optional[str] = None,
    ) -> Optional[str]:
        """Ask the model for a JMESPath expression mapping *data* onto *schema*."""
        prompt = GENERATE_MAPPING.format(
            instruction=instruction or "(none given)",
            schema=json.dumps(schema or {}, indent=2),
            sample=json.dumps(data, default=str)[:_SAMPLE_CHARS],
            previous_error=(
                f"\nThe previous expression failed with: {previous_error}\n"
                if previous_error else ""
            ),
        )
        response = await self._llm.complete(
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
        )
        try:
            expression = parse_json_object(response["content"]).get("expression")
        except SynthesisError as exc:
            logger.warning(f"[Synthesizer] Mapping generation failed: {exc}")
            return None
        return expression if isinstance(expression, str) and expression.strip() else None
