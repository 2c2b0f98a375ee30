"""Thin wrappers over the webauthn package primitives."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Protocol

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def bytes_to_base64url(value: bytes) -> str:
    """Encode bytes to unpadded base64url."""
    return base64.urlsafe_b64encode(value).decode("utf-8").rstrip("=")


def base64url_to_bytes(value: str) -> bytes:
    """Decode unpadded base64url into bytes."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(f"{value}{padding}")


def is_base64url(value: str) -> bool:
    """Return True when ``value`` is well-formed unpadded base64url."""
    if not value or not _BASE64URL_RE.match(value) or len(value) % 4 == 1:
        return False
    try:
        base64url_to_bytes(value)
    except (binascii.Error, ValueError):
        return False
    return True


def to_base64url(value) -> str:
    """Transport-encode credential material reported by a verifier.

    Bytes-like values are encoded; strings are assumed to be encoded already.
    """
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, bytearray):
        value = bytes(value)
    if isinstance(value, bytes):
        return bytes_to_base64url(value)
    return str(value)


@dataclass
class RegistrationVerification:
    verified: bool
    credential_id: bytes | str | None = None
    public_key: bytes | str | None = None
    counter: int = 0


@dataclass
class AuthenticationVerification:
    verified: bool
    new_counter: int | None = None


class Verifier(Protocol):
    """Capability that builds options and checks authenticator responses."""

    async def generate_registration_options(self, **kwargs) -> dict: ...

    async def verify_registration(self, **kwargs) -> RegistrationVerification | None: ...

    async def generate_authentication_options(self, **kwargs) -> dict: ...

    async def verify_authentication(
        self, **kwargs
    ) -> AuthenticationVerification | None: ...


def _require_webauthn():
    try:
        from webauthn import (
            generate_authentication_options,
            generate_registration_options,
            options_to_json,
            verify_authentication_response,
            verify_registration_response,
        )
        from webauthn.helpers.exceptions import (
            InvalidAuthenticationResponse,
            InvalidJSONStructure,
            InvalidRegistrationResponse,
        )
        from webauthn.helpers.structs import (
            AttestationConveyancePreference,
            AuthenticatorSelectionCriteria,
            PublicKeyCredentialDescriptor,
            ResidentKeyRequirement,
            UserVerificationRequirement,
        )
    except ImportError as exc:
        raise RuntimeError("webauthn package is required for WebAuthn support") from exc

    return {
        "generate_authentication_options": generate_authentication_options,
        "generate_registration_options": generate_registration_options,
        "options_to_json": options_to_json,
        "verify_authentication_response": verify_authentication_response,
        "verify_registration_response": verify_registration_response,
        "InvalidAuthenticationResponse": InvalidAuthenticationResponse,
        "InvalidJSONStructure": InvalidJSONStructure,
        "InvalidRegistrationResponse": InvalidRegistrationResponse,
        "AttestationConveyancePreference": AttestationConveyancePreference,
        "AuthenticatorSelectionCriteria": AuthenticatorSelectionCriteria,
        "PublicKeyCredentialDescriptor": PublicKeyCredentialDescriptor,
        "ResidentKeyRequirement": ResidentKeyRequirement,
        "UserVerificationRequirement": UserVerificationRequirement,
    }


def options_to_json_dict(options) -> dict:
    """Serialize WebAuthn option objects into JSON-safe dictionaries."""
    api = _require_webauthn()
    payload = api["options_to_json"](options)
    if isinstance(payload, bytes):
        return json.loads(payload.decode("utf-8"))
    if isinstance(payload, str):
        return json.loads(payload)
    if isinstance(payload, dict):
        return payload
    raise RuntimeError("Unsupported WebAuthn options payload type")


def _descriptors(api, credential_ids):
    return [
        api["PublicKeyCredentialDescriptor"](id=base64url_to_bytes(credential_id))
        for credential_id in credential_ids or []
    ]


class WebAuthnVerifier:
    """Verifier backed by py_webauthn.

    Responses the library rejects come back as ``verified=False`` results so the
    orchestrator can tell a bad signature apart from a broken ceremony.
    """

    async def generate_registration_options(
        self,
        *,
        rp_id,
        rp_name,
        user_id: bytes,
        user_name,
        user_display_name,
        timeout: int,
        attestation: str = "none",
        exclude_credentials=None,
        resident_key: str = "preferred",
        user_verification: str = "preferred",
    ) -> dict:
        api = _require_webauthn()
        options = api["generate_registration_options"](
            rp_id=rp_id,
            rp_name=rp_name,
            user_id=user_id,
            user_name=user_name,
            user_display_name=user_display_name,
            timeout=timeout,
            attestation=api["AttestationConveyancePreference"](attestation),
            authenticator_selection=api["AuthenticatorSelectionCriteria"](
                resident_key=api["ResidentKeyRequirement"](resident_key),
                user_verification=api["UserVerificationRequirement"](user_verification),
            ),
            exclude_credentials=_descriptors(api, exclude_credentials),
        )
        return options_to_json_dict(options)

    async def verify_registration(
        self,
        *,
        response,
        expected_challenge: str,
        expected_origin,
        expected_rp_id,
        require_user_verification: bool = True,
    ) -> RegistrationVerification | None:
        api = _require_webauthn()
        try:
            verification = api["verify_registration_response"](
                credential=response,
                expected_challenge=base64url_to_bytes(expected_challenge),
                expected_rp_id=expected_rp_id,
                expected_origin=expected_origin,
                require_user_verification=require_user_verification,
            )
        except (api["InvalidRegistrationResponse"], api["InvalidJSONStructure"]):
            return RegistrationVerification(verified=False)
        return RegistrationVerification(
            verified=True,
            credential_id=verification.credential_id,
            public_key=verification.credential_public_key,
            counter=verification.sign_count,
        )

    async def generate_authentication_options(
        self,
        *,
        rp_id,
        timeout: int,
        user_verification: str = "preferred",
        allow_credentials=None,
    ) -> dict:
        api = _require_webauthn()
        options = api["generate_authentication_options"](
            rp_id=rp_id,
            timeout=timeout,
            user_verification=api["UserVerificationRequirement"](user_verification),
            allow_credentials=_descriptors(api, allow_credentials),
        )
        return options_to_json_dict(options)

    async def verify_authentication(
        self,
        *,
        response,
        expected_challenge: str,
        expected_origin,
        expected_rp_id,
        credential,
        require_user_verification: bool = True,
    ) -> AuthenticationVerification | None:
        api = _require_webauthn()
        try:
            verification = api["verify_authentication_response"](
                credential=response,
                expected_challenge=base64url_to_bytes(expected_challenge),
                expected_rp_id=expected_rp_id,
                expected_origin=expected_origin,
                credential_public_key=base64url_to_bytes(credential.public_key),
                credential_current_sign_count=credential.counter,
                require_user_verification=require_user_verification,
            )
        except (api["InvalidAuthenticationResponse"], api["InvalidJSONStructure"]):
            return AuthenticationVerification(verified=False)
        return AuthenticationVerification(
            verified=True, new_counter=verification.new_sign_count
        )
