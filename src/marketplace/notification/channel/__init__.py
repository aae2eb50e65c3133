"""Delivery channel registry.

One adapter instance per channel. Fake adapters are used until a real
adapter is registered with ``register_channel``.
"""

from marketplace.notification.channel.fake import FakeChannelAdapter
from marketplace.notification.channel.port import ChannelPort
from marketplace.notification.notification import NotificationChannel

_channel_instances: dict[NotificationChannel, ChannelPort] = {}


def get_channel(channel: NotificationChannel) -> ChannelPort:
    if channel not in _channel_instances:
        _channel_instances[channel] = FakeChannelAdapter(channel.value)
    return _channel_instances[channel]


def register_channel(channel: NotificationChannel, adapter: ChannelPort) -> None:
    _channel_instances[channel] = adapter


def reset_channels() -> None:
    _channel_instances.clear()
