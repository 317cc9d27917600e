"""Domain errors raised by the session state machine and its sub-ledgers."""

from __future__ import annotations


class PresenceError(Exception):
    """Base error carrying a message that is safe to show to the user."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class StateConflictError(PresenceError):
    """The requested transition is not valid for the user's current state."""


class AlreadyActiveError(StateConflictError):
    default_message = "You're already checked in. Use `/checkout` to end your current session first."


class NotCheckedInError(StateConflictError):
    default_message = "You haven't checked in yet. Use `/checkin` to check in first."


class AlreadyOnBreakError(StateConflictError):
    default_message = "You're already on a break. Use `/break-end` to end your current break first."


class NotOnBreakError(StateConflictError):
    default_message = "You're not currently on a break. Use `/break-start <type>` to start a break."


class NotFoundError(PresenceError):
    """A referenced session or break id does not resolve."""


class SessionNotFoundError(NotFoundError):
    default_message = "Your check-in session could not be found. Please check in again."


class BreakNotFoundError(NotFoundError):
    default_message = "Break record not found."


class InvalidTimezoneError(PresenceError):
    default_message = "Invalid timezone. Use an identifier like \"America/New_York\" or \"Europe/London\"."
