"""Delivery channel port: the interface every email, SMS and push adapter implements."""

from abc import ABC, abstractmethod
from typing import Any


class ChannelPort(ABC):
    @abstractmethod
    def send(self, recipient_id: str, title: str, body: str, data: dict[str, Any] | None = None) -> dict:
        """Deliver one message to a user.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
