"""Exceptions raised by passkey ceremonies."""

from __future__ import annotations


class PasskeyError(Exception):
    """Base class for ceremony failures reported back to the client."""

    message = "Passkey ceremony failed."

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(PasskeyError):
    message = "Invalid request."


class ChallengeNotFoundError(PasskeyError):
    message = "Challenge not found. Please restart the ceremony."


class UserNotFoundError(PasskeyError):
    message = "User not found."


class NoCredentialsRegisteredError(PasskeyError):
    message = "No passkey is registered for this user. Please register first."


class CredentialMismatchError(PasskeyError):
    message = "No matching passkey is registered for this user."
