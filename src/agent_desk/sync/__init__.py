from agent_desk.sync.live_updates import LiveUpdateSubscriber, parse_live_event
from agent_desk.sync.message_store import MessageStore, StoreState
from agent_desk.sync.pending_sends import PendingSends
from agent_desk.sync.send_coordinator import SendCoordinator
from agent_desk.sync.session_registry import SessionRegistry

__all__ = [
    "LiveUpdateSubscriber",
    "MessageStore",
    "PendingSends",
    "SendCoordinator",
    "SessionRegistry",
    "StoreState",
    "parse_live_event",
]
