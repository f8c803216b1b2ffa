"""Fake event transport: records published messages for testing."""

import time
from uuid import uuid4

from medstock.egress.port import EventTransport


class FakeEventTransport(EventTransport):
    """Transport that keeps messages in memory for test assertions."""

    def __init__(self):
        self.published: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Publish failed"
        self.delay_seconds = 0.0

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Publish failed",
        delay_seconds: float = 0.0,
    ):
        """Configure the fake transport behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds

    def publish(self, topic: str, payload: dict) -> dict:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"msg-{uuid4().hex[:12]}"
        self.published.append({"message_id": message_id, "topic": topic, "payload": payload})
        return {"message_id": message_id, "status": "published"}

    def topics(self) -> list[str]:
        return [message["topic"] for message in self.published]

    def messages(self, topic: str) -> list[dict]:
        return [message["payload"] for message in self.published if message["topic"] == topic]

    def reset(self):
        """Clear published messages (useful between tests)."""
        self.published.clear()
        self.should_succeed = True
        self.failure_reason = "Publish failed"
        self.delay_seconds = 0.0
