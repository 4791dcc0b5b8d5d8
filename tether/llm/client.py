"""LLMClient — the single litellm entry point for config synthesis and response judging.

Every model request tether makes (new API configs, loop selectors, response
mappings, validation verdicts) goes through complete(). Provider failures
surface as SynthesisError so the self-healing loop can count them as one
failed attempt.
"""

import asyncio

import litellm
from tether.config import TetherConfig, config as default_config
from tether.exceptions import SynthesisError


def is_local_model(model: str) -> bool:
    """Ollama models take no API key and ignore JSON mode."""
    return model.startswith("ollama/") or model.startswith("ollama_chat/")


class LLMClient:
    """Chat completions against TETHER_DEFAULT_LLM_MODEL, or an explicit model.

    Args:
        model:  litellm model string; config.default_llm_model when omitted.
        config: TetherConfig supplying temperature, token cap, timeout and key.
    """

    def __init__(self, model: str = None, config: TetherConfig = None):
        self.config = config or default_config
        self.model = model or self.config.default_llm_model
        litellm.drop_params = True

    async def complete(
        self,
        messages: list[dict],
        temperature: float = None,
        max_tokens: int = None,
        response_format: dict = None,
    ) -> dict:
        """Send *messages* and return the reply text with token counts.

        Callers ask for ``{"type": "json_object"}`` and parse the reply with
        parse_json_object(); the format hint is dropped for local models.

        Returns:
            {"content": str, "usage": {"input_tokens": int, "output_tokens": int}}

        Raises:
            SynthesisError: provider error, timeout or malformed completion.
        """
        try:
            kwargs = {
                "model": self.model,
                "messages": messages,
                "temperature": self.config.llm_temperature if temperature is None else temperature,
                "max_tokens": self.config.llm_max_tokens if max_tokens is None else max_tokens,
            }
            if response_format and not is_local_model(self.model):
                kwargs["response_format"] = response_format
            if self.config.llm_api_key:
                kwargs["api_key"] = self.config.llm_api_key

            response = await asyncio.wait_for(
                litellm.acompletion(**kwargs), timeout=self.config.llm_timeout_seconds
            )

            reply = response.choices[0].message
            return {
                "content": reply.content or "",
                "usage": {
                    "input_tokens": response.usage.prompt_tokens,
                    "output_tokens": response.usage.completion_tokens,
                },
            }
        except Exception as e:
            raise SynthesisError(f"LLM call failed: {e}", details={"model": self.model})
