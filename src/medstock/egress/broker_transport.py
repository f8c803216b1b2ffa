"""Event transport backed by a Protean broker (Redis Streams in production)."""

from uuid import uuid4

from medstock.egress.port import EventTransport


class BrokerTransport(EventTransport):
    """Publishes each message on a broker stream named after its topic."""

    def __init__(self, broker):
        self.broker = broker

    def publish(self, topic: str, payload: dict) -> dict:
        message_id = self.broker.publish(topic, {"id": uuid4().hex, "topic": topic, "data": payload})
        return {"message_id": message_id, "status": "published"}
