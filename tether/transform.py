"""Transform/extraction facade — JMESPath evaluation, schema checks, flattening.

Used for three things:
  - response shaping (step.response_mapping, config.response_mapping)
  - loop-item extraction (step.loop_selector)
  - data_path extraction inside the transport

Expressions are JMESPath strings. ``@`` selects the whole input. A plain
callable is also accepted and is called with the input.
"""

import json
from typing import Any, Callable, Optional, Union

import jmespath
import jsonschema
from jmespath.exceptions import JMESPathError

from tether.exceptions import TransformError
from tether.types import TransformResult

IDENTITY = "@"

Expression = Union[str, Callable[[Any], Any]]


def flatten_object(obj: Any, parent_key: str = "") -> dict[str, Any]:
    """Flatten nested dicts into ``parent_child_leaf`` keys.

    Lists and scalars are leaves. Non-dict inputs flatten to ``{}``.

    Example:
        flatten_object({"id": 1, "owner": {"name": "a"}}, "currentItem")
        → {"currentItem_id": 1, "currentItem_owner_name": "a"}
    """
    result: dict[str, Any] = {}
    if not isinstance(obj, dict):
        return result
    for key, value in obj.items():
        prop = f"{parent_key}_{key}" if parent_key else str(key)
        if isinstance(value, dict):
            result.update(flatten_object(value, prop))
        else:
            result[prop] = value
    return result


def validate_schema(data: Any, schema: Optional[dict]) -> Optional[str]:
    """Check *data* against a JSON Schema. Returns an error string, or None when valid."""
    if not schema:
        return None
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        path = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        return f"Schema validation failed at {path}: {exc.message}"
    except jsonschema.SchemaError as exc:
        return f"Invalid response schema: {exc.message}"
    return None


class TransformFacade:
    """Evaluates mapping expressions against JSON-shaped data."""

    def evaluate(self, data: Any, expression: Optional[Expression]) -> TransformResult:
        """Evaluate *expression* against *data* without raising.

        An empty expression is the identity.

        Returns:
            TransformResult(success, data, error)
        """
        try:
            return TransformResult(success=True, data=self.apply(data, expression))
        except TransformError as exc:
            return TransformResult(success=False, error=str(exc))

    def apply(self, data: Any, expression: Optional[Expression]) -> Any:
        """Evaluate *expression* against *data*.

        Raises:
            TransformError: compile or evaluation failure. The message always
                starts with ``JMESPath`` so callers can recognise mapping errors.
        """
        if expression is None or expression == "" or expression == IDENTITY:
            return data
        if callable(expression):
            try:
                return expression(data)
            except Exception as exc:
                raise TransformError(f"JMESPath mapping function failed: {exc}")
        try:
            compiled = jmespath.compile(expression)
        except JMESPathError as exc:
            raise TransformError(
                f"JMESPath expression '{expression}' is invalid: {exc}", expression=expression
            )
        try:
            return compiled.search(_jsonable(data))
        except JMESPathError as exc:
            raise TransformError(
                f"JMESPath evaluation of '{expression}' failed: {exc}", expression=expression
            )

    def extract_items(self, data: Any, selector: Optional[Expression]) -> list:
        """Evaluate a loop selector. Failure or a non-list result yields ``[]``."""
        result = self.evaluate(data, selector)
        if result.success and isinstance(result.data, list):
            return result.data
        return []


def _jsonable(data: Any) -> Any:
    """JMESPath only understands plain JSON types; round-trip anything else."""
    if isinstance(data, (dict, list, str, int, float, bool)) or data is None:
        return data
    return json.loads(json.dumps(data, default=str))
