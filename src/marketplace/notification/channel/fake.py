"""In-memory channel adapter: records deliveries instead of sending them."""

from typing import Any
from uuid import uuid4

from marketplace.notification.channel.port import ChannelPort


class FakeChannelAdapter(ChannelPort):
    def __init__(self, channel: str):
        self.channel = channel
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = f"{channel} delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str | None = None) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason or f"{self.channel} delivery failed"

    def send(self, recipient_id: str, title: str, body: str, data: dict[str, Any] | None = None) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"{self.channel}-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "message_id": message_id,
                "recipient_id": recipient_id,
                "title": title,
                "body": body,
                "data": data,
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self) -> None:
        self.sent.clear()
        self.configure()
