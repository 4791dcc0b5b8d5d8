"""HTTP/GraphQL transport with variable substitution, retry, and data_path extraction.

This is the layer that owns transport-level retry/backoff. The self-healing
executor above it treats any exception raised here as one failed attempt.
"""

import asyncio
import json
import logging
import time
from typing import Any, Optional

import httpx

from tether.config import TetherConfig, config as default_config
from tether.credentials import substitute_variables
from tether.exceptions import TransportError
from tether.transform import TransformFacade
from tether.types import ApiConfig, CallResponse, HttpMethod, RequestOptions

logger = logging.getLogger(__name__)

_RETRY_STATUS = frozenset({429, 500, 502, 503, 504})
_ERROR_BODY_CHARS = 1000


def _parse_response_body(content: bytes, encoding: str = "utf-8") -> Any:
    """JSON when possible, text otherwise."""
    if not content:
        return None
    try:
        return json.loads(content)
    except (json.JSONDecodeError, ValueError):
        return content.decode(encoding, errors="replace")


def _build_variables(payload: Any, credentials: dict[str, str]) -> dict[str, Any]:
    variables: dict[str, Any] = {}
    if isinstance(payload, dict):
        variables.update(payload)
    elif payload is not None:
        variables["payload"] = payload
    variables.update(credentials or {})
    return variables


def _build_request(config: ApiConfig, variables: dict[str, Any]) -> dict[str, Any]:
    """Render the config into httpx request arguments."""
    url = substitute_variables(config.url_host.rstrip("/") + config.url_path, variables)
    headers = substitute_variables(dict(config.headers), variables)
    params = {
        k: v for k, v in substitute_variables(dict(config.query_params), variables).items()
        if v is not None and v != ""
    }
    request: dict[str, Any] = {"method": config.method.value, "url": url, "headers": headers}
    if params:
        request["params"] = params

    if config.body and config.method not in (HttpMethod.GET, HttpMethod.HEAD):
        body = substitute_variables(config.body, variables)
        try:
            request["json"] = json.loads(body)
        except (json.JSONDecodeError, ValueError):
            request["content"] = body.encode()
    return request


class HttpTransport:
    """Default TransportCaller backed by httpx.

    Args:
        config:    TetherConfig instance (timeouts, retry cap, size limit).
        transform: TransformFacade used for ``config.data_path`` extraction.
    """

    def __init__(self, config: Optional[TetherConfig] = None, transform: Optional[TransformFacade] = None) -> None:
        self._config = config or default_config
        self._transform = transform or TransformFacade()

    async def _send(self, request: dict[str, Any], timeout: float) -> tuple[httpx.Response, bytes, int]:
        """Execute a single HTTP request with streaming size limit enforcement."""
        size_limit = self._config.response_size_limit_kb * 1024
        start = time.monotonic()
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            async with client.stream(**request) as response:
                content = b""
                async for chunk in response.aiter_bytes(8192):
                    content += chunk
                    if len(content) > size_limit:
                        raise TransportError(f"Response exceeds size limit of {size_limit} bytes")
        elapsed_ms = int((time.monotonic() - start) * 1000)
        return response, content, elapsed_ms

    async def _send_with_retry(self, request: dict[str, Any], timeout: float) -> tuple[httpx.Response, bytes, int]:
        max_tries = self._config.transport_max_retries + 1
        last_error: Optional[Exception] = None
        for attempt in range(max_tries):
            try:
                response, content, elapsed_ms = await self._send(request, timeout)
                if response.status_code in _RETRY_STATUS and attempt < max_tries - 1:
                    retry_after = response.headers.get("Retry-After")
                    try:
                        sleep_s = float(retry_after) if retry_after else 2 ** attempt
                    except ValueError:
                        sleep_s = 2 ** attempt
                    logger.debug(f"[Transport] {response.status_code} from {request['url']}, retrying in {sleep_s}s")
                    await asyncio.sleep(sleep_s)
                    continue
                return response, content, elapsed_ms
            except TransportError:
                raise
            except (httpx.ConnectError, httpx.ConnectTimeout, httpx.ReadTimeout) as e:
                last_error = e
                if attempt == max_tries - 1:
                    raise TransportError(f"Connection failed after {max_tries} attempts: {e}")
                await asyncio.sleep(2 ** attempt)
            except httpx.HTTPError as e:
                raise TransportError(f"HTTP request failed: {e}")
        raise TransportError(f"Request failed after {max_tries} attempts: {last_error}")

    async def call(
        self,
        config: ApiConfig,
        payload: Any,
        credentials: dict[str, str],
        options: RequestOptions,
    ) -> CallResponse:
        """Call the endpoint described by *config*.

        Raises:
            ConfigurationError: a ``{{variable}}`` placeholder could not be resolved.
            TransportError: network failure, HTTP status >= 400, or GraphQL errors.
            TransformError: ``data_path`` is not valid JMESPath for the body.
        """
        if not config.url_host:
            raise TransportError("No url_host configured for this API call")

        request = _build_request(config, _build_variables(payload, credentials))
        timeout = options.timeout or self._config.http_timeout_seconds
        if options.test_mode:
            logger.info(f"[Transport] Test-mode request {request['method']} {config.url_host}{config.url_path}")

        response, content, elapsed_ms = await self._send_with_retry(request, timeout)
        body = _parse_response_body(content)

        if response.status_code >= 400:
            rendered = body if isinstance(body, str) else json.dumps(body, default=str)
            raise TransportError(
                f"API call failed with status {response.status_code}. "
                f"Response: {str(rendered)[:_ERROR_BODY_CHARS]}",
                status_code=response.status_code,
            )

        # GraphQL reports failures in-band with HTTP 200
        if isinstance(body, dict) and body.get("errors") and not body.get("data"):
            raise TransportError(
                f"GraphQL errors: {json.dumps(body['errors'], default=str)[:_ERROR_BODY_CHARS]}",
                status_code=response.status_code,
            )

        data = body
        if config.data_path:
            data = self._transform.apply(body, config.data_path)

        logger.debug(
            f"[Transport] {request['method']} {config.url_host}{config.url_path} "
            f"→ {response.status_code} in {elapsed_ms}ms"
        )
        return CallResponse(
            data=data,
            status_code=response.status_code,
            headers=dict(response.headers),
        )
