"""Standalone passkey service."""

from __future__ import annotations

import os
from pathlib import Path

from quart import Quart

from .core import Passkeys


def create_app(config: dict | None = None, **kwargs) -> Quart:
    """Build an app configured from ``RP_ID``/``RP_NAME``/``RP_ORIGIN``/``DATA_DIR``/``LOG_DIR``."""
    app = Quart(__name__)

    data_dir = Path(os.environ.get("DATA_DIR") or Path.cwd() / "data")
    app.config.update(
        PASSKEY_RP_ID=os.environ.get("RP_ID"),
        PASSKEY_RP_NAME=os.environ.get("RP_NAME"),
        PASSKEY_RP_ORIGIN=os.environ.get("RP_ORIGIN"),
        PASSKEY_DATA_FILE=str(data_dir / "webauthn.json"),
        PASSKEY_LOG_DIR=os.environ.get("LOG_DIR") or str(Path.cwd() / "logs"),
    )
    if config:
        app.config.update(config)

    Passkeys(app, **kwargs)
    return app


if __name__ == "__main__":
    create_app().run()
