"""Load and validate steps.yaml into ExecutionStep objects.

Resolution order:
  1. Path passed explicitly by caller
  2. ./steps.yaml in current working directory
"""

from pathlib import Path
from typing import Optional

import yaml

from tether.config.schema import StepsConfig, StepYAML
from tether.types import ApiConfig, ExecutionStep


def _find_file(name: str, explicit: Optional[Path]) -> Path:
    """Locate config file: explicit > cwd."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    cwd_path = Path.cwd() / name
    if cwd_path.exists():
        return cwd_path

    raise FileNotFoundError(
        f"No {name} found. Create one in your project directory "
        f"or use load_steps_yaml(path=...)."
    )


def _step_from_yaml(entry: StepYAML) -> ExecutionStep:
    api = entry.api_config.model_dump(exclude_none=True)
    return ExecutionStep(
        id=entry.id,
        api_config=ApiConfig(**api),
        execution_mode=entry.execution_mode,
        loop_selector=entry.loop_selector,
        loop_max_iters=entry.loop_max_iters,
        response_mapping=entry.response_mapping,
        integration_id=entry.integration_id,
    )


def load_steps_yaml(path: Optional[Path] = None) -> list[ExecutionStep]:
    """Load steps.yaml → list of ExecutionStep objects.

    Args:
        path: Explicit path to steps.yaml. If None, searches cwd.

    Returns:
        List of validated ExecutionStep instances, in file order.

    Raises:
        FileNotFoundError: no file could be located.
        pydantic.ValidationError: the file does not match the step schema.
    """
    resolved = _find_file("steps.yaml", path)
    raw = yaml.safe_load(resolved.read_text())
    parsed = StepsConfig.model_validate(raw or {"steps": []})
    return [_step_from_yaml(entry) for entry in parsed.steps]
