"""REST client for the Pub/Sub emulator.

Every call except publish is best effort: transport errors, non-2xx statuses
and malformed bodies are absorbed and reported as an empty result.
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from utilities import short_name, mirror_subscription

logger = logging.getLogger(__name__)


class PublishError(Exception):
    def __init__(self, status_code: int, details: Any):
        super().__init__(f"publish failed with status {status_code}")
        self.status_code = status_code
        self.details = details


def _sub_path(subscription: str, action: str) -> str:
    return f"/subscriptions/{quote(subscription, safe='')}:{action}"


class EmulatorClient:
    def __init__(self, base_url: str, project_id: str, timeout: float = 30,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.project_id = project_id
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()

    async def list_topics(self) -> List[str]:
        """Short names of the project's topics, [] when the emulator cannot answer."""
        try:
            client = await self._get_client()
            resp = await client.get("/topics")
            if not resp.is_success:
                logger.debug("List topics returned %s", resp.status_code)
                return []
            topics = resp.json().get("topics") or []
            names = [short_name(t.get("name") or "") for t in topics]
        except Exception as e:
            logger.debug("List topics failed: %s", e)
            return []
        return [n for n in names if n]

    async def create_subscription(self, topic: str) -> str:
        """Fire and forget: create "<topic>.ui", ignoring any failure. Returns its name."""
        subscription = mirror_subscription(topic)
        try:
            client = await self._get_client()
            resp = await client.post("/subscriptions", json={
                "name": f"projects/{self.project_id}/subscriptions/{subscription}",
                "topic": f"projects/{self.project_id}/topics/{topic}",
            })
            if not resp.is_success:
                logger.debug("Create subscription %s returned %s", subscription, resp.status_code)
        except Exception as e:
            logger.debug("Create subscription %s failed: %s", subscription, e)
        return subscription

    async def pull(self, subscription: str, max_messages: int) -> List[Dict[str, Any]]:
        try:
            client = await self._get_client()
            resp = await client.post(_sub_path(subscription, "pull"), json={"maxMessages": max_messages})
            if not resp.is_success:
                logger.debug("Pull %s returned %s", subscription, resp.status_code)
                return []
            received = resp.json().get("receivedMessages") or []
        except Exception as e:
            logger.debug("Pull %s failed: %s", subscription, e)
            return []
        return [rm for rm in received if isinstance(rm, dict)]

    async def acknowledge(self, subscription: str, ack_ids: List[str]):
        try:
            client = await self._get_client()
            resp = await client.post(_sub_path(subscription, "acknowledge"), json={"ackIds": ack_ids})
            if not resp.is_success:
                logger.debug("Acknowledge %s returned %s", subscription, resp.status_code)
        except Exception as e:
            logger.debug("Acknowledge %s failed: %s", subscription, e)

    async def publish(self, topic: str, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Publish encoded messages to topic. Raises PublishError when the emulator refuses."""
        try:
            client = await self._get_client()
            resp = await client.post(f"/topics/{quote(topic, safe='')}:publish", json={"messages": messages})
        except httpx.HTTPError as e:
            raise PublishError(502, {"message": str(e)}) from e
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not resp.is_success:
            raise PublishError(resp.status_code, body)
        return body if isinstance(body, dict) else {}
