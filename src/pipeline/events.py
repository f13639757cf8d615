"""
Job status events posted to an optional webhook.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


class EventNotifier:
    """Posts job status transitions as JSON. Delivery failures never affect the job."""

    def __init__(self, events_url: Optional[str] = None, enabled: bool = False,
                 timeout_seconds: float = 10.0):
        self.events_url = events_url
        self.enabled = bool(enabled and events_url)
        self.timeout_seconds = timeout_seconds

    async def send(self, event_type: str, job_id: str, **data: Any) -> bool:
        """Post one event. Returns True when the endpoint accepted it."""
        if not self.enabled:
            return False

        payload: Dict[str, Any] = {
            "type": event_type,
            "job_id": job_id,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
            **data,
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as client:
                async with client.post(self.events_url, json=payload) as response:
                    response.raise_for_status()
            logger.debug(f"Sent {event_type} event for job {job_id}")
            return True
        except Exception as e:
            logger.warning(f"Failed to send {event_type} event for job {job_id}: {e}")
            return False
