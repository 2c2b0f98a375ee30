"""Core extension initialization."""

from __future__ import annotations

from .audit import AuditLog, configure_file_logging, remove_file_logging
from .ceremony import PasskeyCeremonies
from .config import DEFAULTS, PasskeyConfig
from .datastore import CredentialStore, JSONFileStorage, MemoryStorage
from .ledger import InMemoryChallengeLedger
from .webauthn import WebAuthnVerifier


class Passkeys:
    """Quart extension exposing passkey registration and sign-in endpoints."""

    def __init__(self, app=None, storage=None, **kwargs):
        self.app = None
        self.storage = storage
        self.ledger = kwargs.get("ledger")
        self.verifier = kwargs.get("verifier")
        self.config: PasskeyConfig | None = None
        self.store: CredentialStore | None = None
        self.ceremonies: PasskeyCeremonies | None = None
        self.audit: AuditLog | None = None
        self._log_handler = None

        if app is not None:
            self.init_app(app, storage=storage, **kwargs)

    def init_app(self, app, storage=None, **kwargs):
        self.app = app
        if storage is not None:
            self.storage = storage
        self.ledger = kwargs.get("ledger", self.ledger)
        self.verifier = kwargs.get("verifier", self.verifier)

        self._load_defaults(app)
        self.config = PasskeyConfig.from_mapping(app.config)

        if self.storage is None:
            data_file = app.config.get("PASSKEY_DATA_FILE")
            self.storage = JSONFileStorage(data_file) if data_file else MemoryStorage()
        if self.ledger is None:
            self.ledger = InMemoryChallengeLedger(ttl=self.config.challenge_ttl)
        if self.verifier is None:
            self.verifier = WebAuthnVerifier()

        self.audit = AuditLog(scope=app)
        if self._log_handler is not None:
            remove_file_logging(self._log_handler)
            self._log_handler = None
        log_dir = app.config.get("PASSKEY_LOG_DIR")
        if log_dir:
            self._log_handler = configure_file_logging(log_dir, scope=app)

        self.store = CredentialStore(self.storage)
        self.ceremonies = PasskeyCeremonies(
            self.config, self.store, self.ledger, self.verifier, self.audit
        )

        from .views import passkeys_bp

        if "passkeys" not in app.blueprints:
            app.register_blueprint(passkeys_bp)

        app.extensions["passkeys"] = self
        return self

    @staticmethod
    def _load_defaults(app):
        for key, value in DEFAULTS.items():
            app.config.setdefault(key, value)
