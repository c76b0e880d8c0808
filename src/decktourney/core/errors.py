"""Exception taxonomy for the tournament engine.

Backend failures are never retried: the scheduler halts the run and shows
the message verbatim. Raw ``requests`` exceptions never escape the backend
layer.
"""


class TournamentError(Exception):
    """Base class for all engine errors."""


class TransportError(TournamentError):
    """The request could not reach the match backend."""


class BackendError(TournamentError):
    """The backend answered with a non-success status or a malformed body."""

    def __init__(self, message: str, status: int | None = None):
        self.message = message
        self.status = status
        super().__init__(message)


class InvalidStateError(TournamentError):
    """A command was issued outside the scheduler state that allows it."""

    def __init__(self, command: str, run_state: str):
        self.command = command
        self.run_state = run_state
        super().__init__(f"{command} not allowed while {run_state}")
