"""Real-time channel: WebSocket rooms and the throttled pool broadcaster."""

from backend_tronwatch.realtime.broadcaster import PoolUpdateBroadcaster
from backend_tronwatch.realtime.hub import RoomHub, RoomPublisher

__all__ = ["PoolUpdateBroadcaster", "RoomHub", "RoomPublisher"]
