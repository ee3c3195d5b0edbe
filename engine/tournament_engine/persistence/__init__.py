"""Persistence layer: every write to the tournament store goes through here."""

from .admin import wipe_community_data
from .catches import (
    SubmittedCatch,
    get_catch,
    list_pending_catches,
    set_catch_status,
    submit_catch,
)
from .community import (
    clear_view_handles,
    get_config,
    list_community_ids,
    set_view_handle,
    upsert_config,
)
from .events import (
    OpenedEvent,
    close_event,
    get_active_event,
    get_event,
    list_events,
    open_event,
)
from .results import get_event_results, snapshot_event
from .uploads import consume_upload, record_upload, resolve_recent_upload

__all__ = [
    "OpenedEvent",
    "SubmittedCatch",
    "clear_view_handles",
    "close_event",
    "consume_upload",
    "get_active_event",
    "get_catch",
    "get_config",
    "get_event",
    "get_event_results",
    "list_community_ids",
    "list_events",
    "list_pending_catches",
    "open_event",
    "record_upload",
    "resolve_recent_upload",
    "set_catch_status",
    "set_view_handle",
    "snapshot_event",
    "submit_catch",
    "upsert_config",
    "wipe_community_data",
]
