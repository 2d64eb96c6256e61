# beetracker/errors.py
from __future__ import annotations


class TrackerError(Exception):
    """Base for every error a request can surface; carries its HTTP status."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(TrackerError):
    status_code = 404


class ValidationError(TrackerError):
    status_code = 400


class Conflict(TrackerError):
    status_code = 409


class InvalidState(TrackerError):
    status_code = 400


class InvalidTransition(InvalidState):
    pass
