"""Signals emitted by quart-passkeys."""

from blinker import Namespace

_signals = Namespace()

passkey_registered = _signals.signal("passkey-registered")
passkey_authenticated = _signals.signal("passkey-authenticated")
