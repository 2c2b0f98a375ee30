"""Proxy for the active passkeys extension."""

from quart import current_app
from werkzeug.local import LocalProxy


def _get_passkeys():
    passkeys = current_app.extensions.get("passkeys")
    if passkeys is None:
        raise RuntimeError("Passkeys extension is not initialized for this app")
    return passkeys


_passkeys = LocalProxy(_get_passkeys)
