"""Errors raised by the registration and authentication flows."""

from __future__ import annotations


class FlowError(Exception):
    """Base class for every failure surfaced by a ceremony step."""

    status_code = 500


class InvalidInput(FlowError, ValueError):
    """A required field is missing or unusable."""

    status_code = 400


class NotFound(FlowError, KeyError):
    """The requested user or device does not exist."""

    status_code = 404

    def __str__(self) -> str:
        # KeyError quotes its argument; keep messages readable.
        return str(self.args[0]) if self.args else ""


class StorageError(FlowError):
    """Reading or writing a user record failed."""

    status_code = 500


class EntropyUnavailable(FlowError):
    """The operating system could not supply random bytes."""

    status_code = 500


class VerificationFailed(FlowError):
    """The verifier rejected the client's credential."""

    status_code = 400


__all__ = [
    "EntropyUnavailable",
    "FlowError",
    "InvalidInput",
    "NotFound",
    "StorageError",
    "VerificationFailed",
]
