"""Registration and authentication ceremonies.

Each ceremony runs in two steps. The options step issues a challenge and parks it
in the ledger under ``(user id, rp id)``; the verify step takes that challenge
back out before anything else happens, so a challenge can be checked at most
once whatever the verifier later decides.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .audit import AuditLog
from .config import PasskeyConfig
from .datastore import CredentialStore
from .errors import (
    ChallengeNotFoundError,
    CredentialMismatchError,
    NoCredentialsRegisteredError,
    UserNotFoundError,
    ValidationError,
)
from .ledger import CeremonyScope, ChallengeLedger
from .models import CredentialRecord, PasskeyContext, UserRecord
from .webauthn import Verifier, base64url_to_bytes, to_base64url

USER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9._-]{3,64}$")


def sanitize_user_id(value) -> str:
    trimmed = value.strip() if isinstance(value, str) else ""
    if not USER_ID_PATTERN.fullmatch(trimmed):
        raise ValidationError(
            "User IDs must be 3 to 64 characters of letters, digits, dots, "
            "hyphens or underscores."
        )
    return trimmed


def response_credential_id(response) -> str | None:
    if not isinstance(response, dict):
        return None
    raw_id = response.get("id") or response.get("rawId")
    return raw_id if isinstance(raw_id, str) and raw_id else None


@dataclass
class VerificationResult:
    verified: bool
    user_id: str | None = None
    user: UserRecord | None = None
    credential_id: str | None = None
    counter: int | None = None

    def to_dict(self) -> dict:
        payload: dict = {"verified": self.verified}
        if self.user is not None:
            payload["user"] = self.user.to_dict()
        return payload


class PasskeyCeremonies:
    """Coordinates the store, the ledger and the verifier. Holds no state itself."""

    def __init__(
        self,
        config: PasskeyConfig,
        store: CredentialStore,
        ledger: ChallengeLedger,
        verifier: Verifier,
        audit: AuditLog | None = None,
    ):
        self.config = config
        self.store = store
        self.ledger = ledger
        self.verifier = verifier
        self.audit = audit or AuditLog()

    def _rp_id(self, context: PasskeyContext | None) -> str:
        return (context and context.rp_id) or self.config.default_rp_id

    def _rp_name(self, context: PasskeyContext | None) -> str:
        return (context and context.rp_name) or self.config.default_rp_name

    def _origin(self, context: PasskeyContext | None) -> str:
        return (context and context.origin) or self.config.default_origin

    async def _take_challenge(self, event, user_id, rp_id, scope) -> str:
        challenge = await self.ledger.take(user_id, rp_id, scope)
        if not challenge:
            self.audit.error(f"{event} challenge missing", userId=user_id, rpID=rp_id)
            raise ChallengeNotFoundError(user_id=user_id, rp_id=rp_id)
        return challenge

    async def generate_registration_options(
        self, user_id, context: PasskeyContext | None = None
    ) -> dict:
        sanitized_id = sanitize_user_id(user_id)
        user = await self.store.ensure_user(sanitized_id)
        rp_id = self._rp_id(context)

        options = await self.verifier.generate_registration_options(
            rp_id=rp_id,
            rp_name=self._rp_name(context),
            user_id=base64url_to_bytes(user.user_handle),
            user_name=sanitized_id,
            user_display_name=sanitized_id,
            timeout=self.config.timeout,
            attestation="none",
            exclude_credentials=user.credential_ids(),
            resident_key="preferred",
            user_verification="preferred",
        )

        await self.ledger.put(
            sanitized_id, rp_id, CeremonyScope.REGISTRATION, options["challenge"]
        )
        self.audit.info(
            "REG-OPTIONS issued",
            userId=sanitized_id,
            rpID=rp_id,
            excludeCredentialCount=len(options.get("excludeCredentials") or []),
        )
        return options

    async def verify_registration_response(
        self, user_id, response, context: PasskeyContext | None = None
    ) -> VerificationResult:
        sanitized_id = sanitize_user_id(user_id)
        rp_id = self._rp_id(context)
        expected_challenge = await self._take_challenge(
            "REG-VERIFY", sanitized_id, rp_id, CeremonyScope.REGISTRATION
        )

        verification = await self.verifier.verify_registration(
            response=response,
            expected_challenge=expected_challenge,
            expected_origin=self._origin(context),
            expected_rp_id=rp_id,
            require_user_verification=self.config.require_user_verification,
        )

        if (
            verification is None
            or not verification.verified
            or verification.credential_id is None
            or verification.public_key is None
        ):
            self.audit.error(
                "REG-VERIFY failed",
                userId=sanitized_id,
                rpID=rp_id,
                verified=bool(verification and verification.verified),
            )
            return VerificationResult(verified=False)

        credential = CredentialRecord(
            credential_id=to_base64url(verification.credential_id),
            public_key=to_base64url(verification.public_key),
            counter=int(verification.counter or 0),
        )
        user = await self.store.add_or_update_credential(sanitized_id, credential)
        self.audit.info(
            "REG-VERIFY succeeded",
            userId=sanitized_id,
            rpID=rp_id,
            credentialId=credential.credential_id,
        )
        return VerificationResult(
            verified=True,
            user_id=sanitized_id,
            user=user,
            credential_id=credential.credential_id,
            counter=credential.counter,
        )

    async def generate_authentication_options(
        self, user_id, context: PasskeyContext | None = None
    ) -> dict:
        sanitized_id = sanitize_user_id(user_id)
        user = await self.store.get_user(sanitized_id)
        if user is None or not user.credentials:
            self.audit.error("AUTH-OPTIONS no passkey", userId=sanitized_id)
            raise NoCredentialsRegisteredError(user_id=sanitized_id)

        rp_id = self._rp_id(context)
        options = await self.verifier.generate_authentication_options(
            rp_id=rp_id,
            timeout=self.config.timeout,
            user_verification="preferred",
            allow_credentials=user.credential_ids(),
        )

        await self.ledger.put(
            sanitized_id, rp_id, CeremonyScope.AUTHENTICATION, options["challenge"]
        )
        self.audit.info(
            "AUTH-OPTIONS issued",
            userId=sanitized_id,
            rpID=rp_id,
            allowCredentialCount=len(options.get("allowCredentials") or []),
        )
        return options

    async def verify_authentication_response(
        self, user_id, response, context: PasskeyContext | None = None
    ) -> VerificationResult:
        sanitized_id = sanitize_user_id(user_id)
        rp_id = self._rp_id(context)
        expected_challenge = await self._take_challenge(
            "AUTH-VERIFY", sanitized_id, rp_id, CeremonyScope.AUTHENTICATION
        )

        user = await self.store.get_user(sanitized_id)
        if user is None:
            self.audit.error("AUTH-VERIFY user missing", userId=sanitized_id)
            raise UserNotFoundError(user_id=sanitized_id)

        credential_id = response_credential_id(response)
        if credential_id is None:
            self.audit.error("AUTH-VERIFY credential id missing", userId=sanitized_id)
            raise ValidationError(
                "The authentication response has no credential id.",
                user_id=sanitized_id,
            )

        credential = user.find_credential(credential_id)
        if credential is None:
            self.audit.error(
                "AUTH-VERIFY credential mismatch",
                userId=sanitized_id,
                credentialId=credential_id,
            )
            raise CredentialMismatchError(
                user_id=sanitized_id, credential_id=credential_id
            )

        verification = await self.verifier.verify_authentication(
            response=response,
            expected_challenge=expected_challenge,
            expected_origin=self._origin(context),
            expected_rp_id=rp_id,
            credential=credential,
            require_user_verification=self.config.require_user_verification,
        )

        if (
            verification is None
            or not verification.verified
            or verification.new_counter is None
        ):
            self.audit.error(
                "AUTH-VERIFY failed",
                userId=sanitized_id,
                rpID=rp_id,
                credentialId=credential_id,
            )
            return VerificationResult(verified=False)

        updated = credential.with_counter(verification.new_counter)
        await self.store.add_or_update_credential(sanitized_id, updated)
        self.audit.info(
            "AUTH-VERIFY succeeded",
            userId=sanitized_id,
            rpID=rp_id,
            credentialId=credential_id,
            counter=updated.counter,
        )
        return VerificationResult(
            verified=True,
            user_id=sanitized_id,
            credential_id=credential_id,
            counter=updated.counter,
        )
