"""Event transport port: abstract interface for outbound inventory messages."""

from abc import ABC, abstractmethod


class EventTransport(ABC):
    """Abstract interface for publishing ``inventory.*`` messages."""

    @abstractmethod
    def publish(self, topic: str, payload: dict) -> dict:
        """Publish one message.

        Returns:
            dict with keys: message_id, status ("published" or "failed"), error (optional)
        """
        ...
