"""Records persisted by the credential store."""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass
class CredentialRecord:
    """One registered authenticator, with id and key in base64url form."""

    credential_id: str
    public_key: str
    counter: int = 0

    def with_counter(self, counter: int) -> "CredentialRecord":
        return replace(self, counter=int(counter))

    def to_dict(self) -> dict:
        return {
            "credentialId": self.credential_id,
            "publicKey": self.public_key,
            "counter": self.counter,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CredentialRecord":
        return cls(
            credential_id=str(data["credentialId"]),
            public_key=str(data["publicKey"]),
            counter=int(data.get("counter") or 0),
        )


@dataclass
class UserRecord:
    """A user identity, its authenticator-facing handle and its passkeys."""

    id: str
    user_handle: str
    credentials: list[CredentialRecord] = field(default_factory=list)

    def find_credential(self, credential_id: str) -> CredentialRecord | None:
        for credential in self.credentials:
            if credential.credential_id == credential_id:
                return credential
        return None

    def credential_ids(self) -> list[str]:
        return [credential.credential_id for credential in self.credentials]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userHandle": self.user_handle,
            "credentials": [credential.to_dict() for credential in self.credentials],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserRecord":
        return cls(
            id=str(data["id"]),
            user_handle=data.get("userHandle") or "",
            credentials=[
                CredentialRecord.from_dict(item) for item in data.get("credentials") or []
            ],
        )


@dataclass(frozen=True)
class PasskeyContext:
    """Per-request relying-party overrides. Never persisted."""

    rp_id: str | None = None
    rp_name: str | None = None
    origin: str | None = None
