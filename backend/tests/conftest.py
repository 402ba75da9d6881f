"""
Shared fixtures: an in-process Pub/Sub emulator behind httpx.MockTransport,
an emulator client wired to it, and a FastAPI TestClient over fresh state.
"""
import base64
import json
import os
from typing import Any, Dict, List, Optional

# must be set before importing the app
os.environ["PUBSUB_PROJECT_ID"] = "test-project"
os.environ["PUBSUB_EMULATOR_HOST"] = "emulator.test:8085"
os.environ["MAX_MESSAGES"] = "500"

import httpx
import pytest
from fastapi.testclient import TestClient

from models import MessageBuffer, PollerRegistry
from services import EmulatorClient

PROJECT = "test-project"
BASE_URL = f"http://emulator.test:8085/v1/projects/{PROJECT}"
PREFIX = f"/v1/projects/{PROJECT}"


def encode(value: Any) -> str:
    text = value if isinstance(value, str) else json.dumps(value)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeEmulator:
    """
    Minimal emulator supporting the REST calls the console makes:
    - GET  topics
    - POST subscriptions
    - POST subscriptions/{sub}:pull / :acknowledge
    - POST topics/{topic}:publish
    """

    def __init__(self) -> None:
        self.topics: List[str] = []
        self.queues: Dict[str, List[dict]] = {}
        self.created: List[dict] = []
        self.acked: Dict[str, List[str]] = {}
        self.published: Dict[str, List[dict]] = {}
        self.requests: List[httpx.Request] = []
        # failure switches
        self.down = False
        self.fail: Dict[str, int] = {}  # action -> status code
        self._next_id = 1
        self._seq = 0

    # helpers for tests
    def enqueue(self, subscription: str, data: Any, attributes: Optional[dict] = None,
                ack_id: Optional[str] = "auto", message_id: Optional[str] = None) -> None:
        queue = self.queues.setdefault(subscription, [])
        self._seq += 1
        n = self._seq
        rm = {
            "message": {
                "data": encode(data),
                "attributes": attributes or {},
                "messageId": message_id or f"m-{subscription}-{n}",
                "publishTime": "2024-01-01T00:00:00Z",
            },
        }
        if ack_id == "auto":
            rm["ackId"] = f"ack-{subscription}-{n}"
        elif ack_id:
            rm["ackId"] = ack_id
        queue.append(rm)

    def calls(self, action: str) -> List[httpx.Request]:
        return [r for r in self.requests if self._action(r) == action]

    @staticmethod
    def _action(request: httpx.Request) -> str:
        path = request.url.path[len(PREFIX):]
        if ":" in path:
            return path.rsplit(":", 1)[1]
        return f"{request.method} {path}"

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("emulator down", request=request)
        action = self._action(request)
        if action in self.fail:
            return httpx.Response(self.fail[action], json={"error": {"message": f"{action} failed"}})

        path = request.url.path[len(PREFIX):]
        body = json.loads(request.content) if request.content else {}

        if action == "GET /topics":
            return httpx.Response(200, json={"topics": [{"name": f"projects/{PROJECT}/topics/{t}"} for t in self.topics]})
        if action == "POST /subscriptions":
            self.created.append(body)
            return httpx.Response(200, json=body)
        if action == "pull":
            sub = path.split("/")[-1].rsplit(":", 1)[0]
            queue = self.queues.get(sub, [])
            batch, self.queues[sub] = queue[:body["maxMessages"]], queue[body["maxMessages"]:]
            return httpx.Response(200, json={"receivedMessages": batch} if batch else {})
        if action == "acknowledge":
            sub = path.split("/")[-1].rsplit(":", 1)[0]
            self.acked.setdefault(sub, []).extend(body["ackIds"])
            return httpx.Response(200, json={})
        if action == "publish":
            topic = path.split("/")[-1].rsplit(":", 1)[0]
            ids = []
            for m in body["messages"]:
                self.published.setdefault(topic, []).append(m)
                ids.append(str(self._next_id))
                self._next_id += 1
            return httpx.Response(200, json={"messageIds": ids})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture()
def fake_emulator() -> FakeEmulator:
    return FakeEmulator()


@pytest.fixture()
def emulator(fake_emulator) -> EmulatorClient:
    return EmulatorClient(BASE_URL, PROJECT, transport=httpx.MockTransport(fake_emulator.handle))


@pytest.fixture()
def buffer() -> MessageBuffer:
    return MessageBuffer(capacity=10)


@pytest.fixture()
def client(monkeypatch, emulator) -> TestClient:
    import main as main_mod

    monkeypatch.setattr(main_mod, "BUFFER", MessageBuffer(capacity=500), raising=True)
    monkeypatch.setattr(main_mod, "EMULATOR", emulator, raising=True)
    monkeypatch.setattr(main_mod, "POLLERS", PollerRegistry(), raising=True)
    # no context manager: the discovery lifespan does not start
    return TestClient(main_mod.app)
