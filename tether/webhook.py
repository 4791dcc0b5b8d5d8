"""HttpWebhookNotifier — POSTs call outcomes to a caller-supplied URL.

Best-effort: failures are logged and swallowed, never retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from tether.config import TetherConfig, config as default_config

logger = logging.getLogger(__name__)


class HttpWebhookNotifier:
    """Delivers ``{"call_id", "success", "data" | "error"}`` to a webhook URL."""

    def __init__(self, config: Optional[TetherConfig] = None) -> None:
        self._config = config or default_config

    async def notify(
        self,
        url: str,
        run_id: str,
        success: bool,
        data: Any = None,
        error: Optional[str] = None,
    ) -> None:
        """POST the outcome of run *run_id* to *url*.

        Args:
            url:     Webhook endpoint.
            run_id:  Orchestrator call id.
            success: Whether the call succeeded.
            data:    Transformed data (success only).
            error:   Masked error string (failure only).
        """
        body: dict[str, Any] = {"call_id": run_id, "success": success}
        if success:
            body["data"] = data
        else:
            body["error"] = error
        try:
            async with httpx.AsyncClient(timeout=self._config.webhook_timeout_seconds) as client:
                response = await client.post(
                    url,
                    content=json.dumps(body, default=str),
                    headers={"Content-Type": "application/json"},
                )
            if response.status_code >= 400:
                logger.warning(f"[Webhook] {url} answered {response.status_code} for run {run_id}")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning(f"[Webhook] Delivery to {url} failed for run {run_id}: {exc}")
