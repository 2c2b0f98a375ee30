"""Relying-party configuration passed into the ceremony orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_RP_ID = "localhost"
DEFAULT_RP_NAME = "Passkey Demo"
DEFAULT_TIMEOUT_MS = 60_000
DEFAULT_CHALLENGE_TTL = 300

DEFAULTS = {
    "PASSKEY_RP_ID": None,
    "PASSKEY_RP_NAME": None,
    "PASSKEY_RP_ORIGIN": None,
    "PASSKEY_TIMEOUT": DEFAULT_TIMEOUT_MS,
    "PASSKEY_CHALLENGE_TTL": DEFAULT_CHALLENGE_TTL,
    "PASSKEY_REQUIRE_USER_VERIFICATION": True,
    "PASSKEY_DATA_FILE": None,
    "PASSKEY_LOG_DIR": None,
}


@dataclass(frozen=True)
class PasskeyConfig:
    """Configured relying-party values. ``None`` means "derive from the request"."""

    rp_id: str | None = None
    rp_name: str | None = None
    origin: str | None = None
    timeout: int = DEFAULT_TIMEOUT_MS
    challenge_ttl: float | None = DEFAULT_CHALLENGE_TTL
    require_user_verification: bool = True

    @property
    def default_rp_id(self) -> str:
        return self.rp_id or DEFAULT_RP_ID

    @property
    def default_rp_name(self) -> str:
        return self.rp_name or DEFAULT_RP_NAME

    @property
    def default_origin(self) -> str:
        return self.origin or f"http://{self.default_rp_id}:3000"

    @classmethod
    def from_mapping(cls, config) -> "PasskeyConfig":
        ttl = config.get("PASSKEY_CHALLENGE_TTL", DEFAULT_CHALLENGE_TTL)
        return cls(
            rp_id=config.get("PASSKEY_RP_ID") or None,
            rp_name=config.get("PASSKEY_RP_NAME") or None,
            origin=config.get("PASSKEY_RP_ORIGIN") or None,
            timeout=int(config.get("PASSKEY_TIMEOUT") or DEFAULT_TIMEOUT_MS),
            challenge_ttl=float(ttl) if ttl is not None else None,
            require_user_verification=bool(
                config.get("PASSKEY_REQUIRE_USER_VERIFICATION", True)
            ),
        )
