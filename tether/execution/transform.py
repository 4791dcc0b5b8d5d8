"""Post-call transform with a keyed-store cache of learned mappings.

Resolution order:
  1. cached TransformConfig for (instruction, schema), when reading the cache
  2. the config's own response_mapping
  3. a mapping generated by the synthesizer, checked against response_schema
  4. identity
"""

import hashlib
import json
import logging
from typing import Any, Optional

from tether.exceptions import TransformError
from tether.interfaces import ConfigSynthesizer, KeyedStore
from tether.transform import IDENTITY, TransformFacade, validate_schema
from tether.types import ApiConfig, Metadata, TransformConfig

logger = logging.getLogger(__name__)

DEFAULT_MAPPING_RETRIES = 3


def transform_cache_key(instruction: str, schema: Any) -> str:
    """md5 of the instruction and the canonical JSON of the schema."""
    raw = (instruction or "") + json.dumps(schema, sort_keys=True, default=str)
    return hashlib.md5(raw.encode()).hexdigest()


def _try_mapping(
    transform: TransformFacade, data: Any, expression: str, schema: Any
) -> tuple[bool, Any, Optional[str]]:
    result = transform.evaluate(data, expression)
    if not result.success:
        return False, None, result.error
    problem = validate_schema(result.data, schema if isinstance(schema, dict) else None)
    if problem:
        return False, None, problem
    return True, result.data, None


async def execute_transform(
    store: KeyedStore,
    transform: TransformFacade,
    synthesizer: ConfigSynthesizer,
    config: ApiConfig,
    data: Any,
    metadata: Metadata,
    from_cache: bool = True,
    retries: int = DEFAULT_MAPPING_RETRIES,
) -> tuple[Any, TransformConfig]:
    """Shape *data* for the caller.

    Returns:
        (transformed data, TransformConfig describing the mapping used)

    Raises:
        TransformError: a schema is set but no mapping produced valid output.
    """
    key = transform_cache_key(config.instruction, config.response_schema)
    schema = config.response_schema

    def _result(expression: str) -> TransformConfig:
        return TransformConfig(
            id=key,
            instruction=config.instruction,
            response_schema=schema,
            response_mapping=expression,
        )

    if from_cache:
        cached = await store.get_transform_config(key, metadata.org_id)
        if cached and cached.response_mapping:
            ok, shaped, error = _try_mapping(transform, data, cached.response_mapping, schema)
            if ok:
                logger.debug(f"[Transform] Using cached mapping {key} (run={metadata.run_id})")
                return shaped, cached
            logger.info(f"[Transform] Cached mapping {key} no longer fits the response: {error}")

    last_error: Optional[str] = None
    if config.response_mapping:
        ok, shaped, last_error = _try_mapping(transform, data, config.response_mapping, schema)
        if ok:
            return shaped, _result(config.response_mapping)
        if not schema:
            raise TransformError(last_error or "JMESPath mapping failed", expression=config.response_mapping)
        logger.info(f"[Transform] Stored mapping failed, generating a new one: {last_error}")

    if not schema:
        return data, _result(IDENTITY)

    for attempt in range(retries):
        expression = await synthesizer.generate_mapping(schema, data, config.instruction, last_error)
        if not expression:
            last_error = last_error or "No mapping expression was generated"
            break
        ok, shaped, last_error = _try_mapping(transform, data, expression, schema)
        if ok:
            logger.info(f"[Transform] Generated mapping accepted on attempt {attempt + 1} (run={metadata.run_id})")
            return shaped, _result(expression)
        logger.info(f"[Transform] Generated mapping rejected on attempt {attempt + 1}: {last_error}")

    raise TransformError(f"Failed to map the response onto the schema: {last_error}")
