"""Error taxonomy for the tournament engine.

Expected outcomes (``NotFound``, ``InvalidInput``, ``MissingEvidence``,
``EventStillOpen``, ``PermissionDenied``) carry a message that the chat
gateway shows to the submitter verbatim. ``Conflict`` and
``ExternalUnavailable`` are operational failures and are not user facing.
"""

from __future__ import annotations


class TournamentError(RuntimeError):
    """Base class for every error raised by the engine."""

    user_facing = True
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(TournamentError):
    default_message = "Not found."


class NoActiveEvent(NotFound):
    default_message = "No active tournament. An admin must start one first."


class EventNotFound(NotFound):
    default_message = "That tournament is not open."


class CatchNotFound(NotFound):
    default_message = "No weigh-in with that id."


class ConfigNotFound(NotFound):
    default_message = "This server has not been set up yet."


class HandleNotFound(NotFound):
    """A stored channel or message handle no longer resolves on the chat surface."""

    default_message = "Message or channel no longer exists."


class InvalidInput(TournamentError):
    default_message = "Invalid input."


class InvalidWeight(InvalidInput):
    default_message = "Weight must be a valid number (example: 5.62)."


class InvalidPeriod(InvalidInput):
    default_message = "Period must look like YYYY-MM or YYYY."


class InvalidChannel(InvalidInput):
    default_message = "Couldn't read one of the channels. Paste a real #channel mention or channel ID."


class WrongChannel(InvalidInput):
    def __init__(self, channel_id: str) -> None:
        self.channel_id = channel_id
        super().__init__(f"Submit weigh-ins in the panel channel: <#{channel_id}>")


class InvalidTransition(InvalidInput):
    default_message = "That weigh-in has already been decided."


class MissingEvidence(TournamentError):
    default_message = (
        "I don't see a recent weigh-in photo from you in this channel.\n"
        "Upload your photo first, then submit your weigh-in again."
    )


class EventStillOpen(TournamentError):
    default_message = "Results can only be frozen after the tournament ends."


class PermissionDenied(TournamentError):
    default_message = "Admins only."


class Conflict(TournamentError):
    """Integrity violation in the store. Indicates a bug, never user error."""

    user_facing = False
    default_message = "Conflicting tournament state."


class ExternalUnavailable(TournamentError):
    """The chat surface failed for a reason other than a missing handle."""

    user_facing = False
    default_message = "Chat platform unavailable."


__all__ = [
    "TournamentError",
    "NotFound",
    "NoActiveEvent",
    "EventNotFound",
    "CatchNotFound",
    "ConfigNotFound",
    "HandleNotFound",
    "InvalidInput",
    "InvalidWeight",
    "InvalidPeriod",
    "InvalidChannel",
    "WrongChannel",
    "InvalidTransition",
    "MissingEvidence",
    "EventStillOpen",
    "PermissionDenied",
    "Conflict",
    "ExternalUnavailable",
]
