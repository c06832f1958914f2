"""Progress broadcasting."""

from .progress_broadcaster import BroadcastEvent, ProgressBroadcaster, Subscriber
from .redis_publisher import RedisEventPublisher, channel_for

__all__ = [
    "BroadcastEvent",
    "ProgressBroadcaster",
    "Subscriber",
    "RedisEventPublisher",
    "channel_for",
]
