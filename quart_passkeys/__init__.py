"""Public API for quart-passkeys."""

from .audit import AuditLog, configure_file_logging, remove_file_logging
from .ceremony import PasskeyCeremonies, VerificationResult, sanitize_user_id
from .config import PasskeyConfig
from .context import resolve_context
from .core import Passkeys
from .datastore import (
    CredentialStore,
    JSONFileStorage,
    MemoryStorage,
    SQLAlchemyStorage,
    StorageBackend,
)
from .errors import (
    ChallengeNotFoundError,
    CredentialMismatchError,
    NoCredentialsRegisteredError,
    PasskeyError,
    UserNotFoundError,
    ValidationError,
)
from .ledger import CeremonyScope, ChallengeLedger, InMemoryChallengeLedger
from .models import CredentialRecord, PasskeyContext, UserRecord
from .signals import passkey_authenticated, passkey_registered
from .webauthn import Verifier, WebAuthnVerifier

__all__ = [
    "Passkeys",
    "PasskeyCeremonies",
    "PasskeyConfig",
    "PasskeyContext",
    "VerificationResult",
    "sanitize_user_id",
    "resolve_context",
    "CredentialStore",
    "StorageBackend",
    "MemoryStorage",
    "JSONFileStorage",
    "SQLAlchemyStorage",
    "ChallengeLedger",
    "InMemoryChallengeLedger",
    "CeremonyScope",
    "CredentialRecord",
    "UserRecord",
    "Verifier",
    "WebAuthnVerifier",
    "AuditLog",
    "configure_file_logging",
    "remove_file_logging",
    "PasskeyError",
    "ValidationError",
    "ChallengeNotFoundError",
    "UserNotFoundError",
    "NoCredentialsRegisteredError",
    "CredentialMismatchError",
    "passkey_registered",
    "passkey_authenticated",
]
