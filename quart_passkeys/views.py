"""Passkey blueprint and route handlers."""

from __future__ import annotations

from quart import Blueprint, current_app

from .context import context_from_request
from .decorators import ceremony_endpoint
from .proxies import _passkeys
from .signals import passkey_authenticated, passkey_registered

passkeys_bp = Blueprint("passkeys", __name__, url_prefix="/api")


async def _notify(signal, event: str, **kwargs):
    """Send ``signal``; a failing receiver is logged, never reported to the client."""
    try:
        await signal.send_async(current_app._get_current_object(), **kwargs)
    except Exception:
        _passkeys.audit.error(
            f"{event} receiver failed",
            exc_info=True,
            userId=kwargs.get("user_id"),
            signal=signal.name,
        )


@passkeys_bp.route("/register/options", methods=["POST"])
@ceremony_endpoint("REG-OPTIONS", "userId")
async def register_options(payload):
    context = context_from_request(_passkeys.config)
    return await _passkeys.ceremonies.generate_registration_options(
        payload["userId"], context
    )


@passkeys_bp.route("/register/verify", methods=["POST"])
@ceremony_endpoint("REG-VERIFY", "userId", "attestationResponse")
async def register_verify(payload):
    context = context_from_request(_passkeys.config)
    result = await _passkeys.ceremonies.verify_registration_response(
        payload["userId"], payload["attestationResponse"], context
    )
    if result.verified:
        await _notify(
            passkey_registered,
            "REG-VERIFY",
            user_id=result.user_id,
            credential_id=result.credential_id,
        )
    return result.to_dict()


@passkeys_bp.route("/login/options", methods=["POST"])
@ceremony_endpoint("AUTH-OPTIONS", "userId")
async def login_options(payload):
    context = context_from_request(_passkeys.config)
    return await _passkeys.ceremonies.generate_authentication_options(
        payload["userId"], context
    )


@passkeys_bp.route("/login/verify", methods=["POST"])
@ceremony_endpoint("AUTH-VERIFY", "userId", "authenticationResponse")
async def login_verify(payload):
    context = context_from_request(_passkeys.config)
    result = await _passkeys.ceremonies.verify_authentication_response(
        payload["userId"], payload["authenticationResponse"], context
    )
    if result.verified:
        await _notify(
            passkey_authenticated,
            "AUTH-VERIFY",
            user_id=result.user_id,
            credential_id=result.credential_id,
            counter=result.counter,
        )
    return result.to_dict()
