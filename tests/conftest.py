from dataclasses import dataclass, field
from itertools import count

import pytest

from quart_passkeys import (
    CredentialStore,
    InMemoryChallengeLedger,
    MemoryStorage,
    PasskeyCeremonies,
    PasskeyConfig,
)
from quart_passkeys.app import create_app
from quart_passkeys.webauthn import (
    AuthenticationVerification,
    RegistrationVerification,
    bytes_to_base64url,
)


@dataclass
class FakeVerifier:
    """Records every call and answers with canned results."""

    registration_result: RegistrationVerification | None = None
    authentication_result: AuthenticationVerification | None = None
    calls: list[tuple[str, dict]] = field(default_factory=list)
    _challenges: count = field(default_factory=lambda: count(1))

    def _challenge(self, prefix: str) -> str:
        return bytes_to_base64url(f"{prefix}-{next(self._challenges)}".encode("utf-8"))

    def calls_to(self, name):
        return [kwargs for call_name, kwargs in self.calls if call_name == name]

    async def generate_registration_options(self, **kwargs):
        self.calls.append(("generate_registration_options", kwargs))
        return {
            "challenge": self._challenge("reg"),
            "rp": {"id": kwargs["rp_id"], "name": kwargs["rp_name"]},
            "user": {
                "id": bytes_to_base64url(kwargs["user_id"]),
                "name": kwargs["user_name"],
                "displayName": kwargs["user_display_name"],
            },
            "timeout": kwargs["timeout"],
            "excludeCredentials": [
                {"id": credential_id, "type": "public-key"}
                for credential_id in kwargs["exclude_credentials"]
            ],
        }

    async def verify_registration(self, **kwargs):
        self.calls.append(("verify_registration", kwargs))
        return self.registration_result

    async def generate_authentication_options(self, **kwargs):
        self.calls.append(("generate_authentication_options", kwargs))
        return {
            "challenge": self._challenge("auth"),
            "rpId": kwargs["rp_id"],
            "timeout": kwargs["timeout"],
            "allowCredentials": [
                {"id": credential_id, "type": "public-key"}
                for credential_id in kwargs["allow_credentials"]
            ],
        }

    async def verify_authentication(self, **kwargs):
        self.calls.append(("verify_authentication", kwargs))
        return self.authentication_result


@pytest.fixture
def verifier():
    return FakeVerifier(
        registration_result=RegistrationVerification(
            verified=True, credential_id=b"cred-1", public_key=b"public-key", counter=0
        ),
        authentication_result=AuthenticationVerification(verified=True, new_counter=5),
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return CredentialStore(storage)


@pytest.fixture
def ledger():
    return InMemoryChallengeLedger()


@pytest.fixture
def config():
    return PasskeyConfig(
        rp_id="localhost", rp_name="Passkey Demo", origin="http://localhost:3000"
    )


@pytest.fixture
def ceremonies(config, store, ledger, verifier):
    return PasskeyCeremonies(config, store, ledger, verifier)


@pytest.fixture
def app(storage, ledger, verifier, monkeypatch, tmp_path):
    for name in ("RP_ID", "RP_NAME", "RP_ORIGIN", "DATA_DIR", "LOG_DIR"):
        monkeypatch.delenv(name, raising=False)
    return create_app(
        {
            "TESTING": True,
            "PASSKEY_RP_ID": "localhost",
            "PASSKEY_RP_NAME": "Passkey Demo",
            "PASSKEY_RP_ORIGIN": "http://localhost:3000",
            "PASSKEY_DATA_FILE": None,
            "PASSKEY_LOG_DIR": None,
        },
        storage=storage,
        ledger=ledger,
        verifier=verifier,
    )


@pytest.fixture
def client(app):
    return app.test_client()
