"""Credential masking and variable substitution.

Credential values are NEVER logged, persisted, or returned in error strings.
Every error path runs its message through mask_credentials() first, and
configs are passed through sanitize_config() before they reach the store.
"""

import json
import re
from typing import Any, Optional

from tether.exceptions import ConfigurationError
from tether.types import ApiConfig

_TEMPLATE_RE = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")


def mask_credentials(text: str, credentials: Optional[dict[str, str]]) -> str:
    """Return *text* with every credential value replaced by ``{masked_<name>}``.

    Longer values are replaced first so that a secret which contains another
    secret as a substring is still fully masked.
    """
    if not text or not credentials:
        return text or ""
    masked = str(text)
    ordered = sorted(credentials.items(), key=lambda kv: len(str(kv[1] or "")), reverse=True)
    for name, value in ordered:
        if value is None:
            continue
        value = str(value)
        if not value:
            continue
        masked = masked.replace(value, f"{{masked_{name}}}")
    return masked


def mask_error(error: Any, credentials: Optional[dict[str, str]], limit: int = 1000) -> str:
    """Render an exception (or any value) as a masked, truncated string."""
    if isinstance(error, BaseException):
        raw = str(error) or type(error).__name__
    elif isinstance(error, str):
        raw = error
    else:
        raw = json.dumps(error or {}, default=str)
    return mask_credentials(raw, credentials)[:limit]


def sanitize_config(config: Optional[ApiConfig], credentials: Optional[dict[str, str]]) -> Optional[ApiConfig]:
    """Return a copy of *config* with any literal credential value masked.

    Synthesized configs are expected to reference credentials through
    ``{{name}}`` placeholders, but a model can inline a secret it was shown.
    """
    if config is None or not credentials:
        return config
    dumped = config.model_dump_json()
    masked = mask_credentials(dumped, credentials)
    if masked == dumped:
        return config
    return ApiConfig.model_validate_json(masked)


def _lookup_path(path: str, variables: dict[str, Any]) -> Any:
    """Navigate a dot-separated path through *variables*. Missing segments → KeyError."""
    if path in variables:
        return variables[path]
    val: Any = variables
    for part in path.split("."):
        if isinstance(val, dict) and part in val:
            val = val[part]
        elif isinstance(val, list) and part.isdigit() and int(part) < len(val):
            val = val[int(part)]
        else:
            raise KeyError(path)
    return val


def _render_scalar(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


def substitute_variables(template: Any, variables: dict[str, Any]) -> Any:
    """Resolve ``{{name}}`` placeholders in *template* from *variables*.

    Strings are interpolated; dicts and lists are walked recursively; other
    values are returned unchanged. Dot paths (``{{currentItem.id}}``) reach
    into nested payload data.

    Raises:
        ConfigurationError: a placeholder names a variable that does not exist.
    """
    if isinstance(template, str):
        missing: list[str] = []

        def _sub(m: re.Match) -> str:
            try:
                return _render_scalar(_lookup_path(m.group(1), variables))
            except KeyError:
                missing.append(m.group(1))
                return m.group(0)

        rendered = _TEMPLATE_RE.sub(_sub, template)
        if missing:
            raise ConfigurationError(
                f"Unresolved variables in config: {sorted(set(missing))}. "
                f"Available variables: {sorted(variables.keys())}"
            )
        return rendered
    if isinstance(template, dict):
        return {k: substitute_variables(v, variables) for k, v in template.items()}
    if isinstance(template, list):
        return [substitute_variables(v, variables) for v in template]
    return template
