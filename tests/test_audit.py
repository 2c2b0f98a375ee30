import logging

import pytest
from quart import Quart

from quart_passkeys import Passkeys
from quart_passkeys.app import create_app
from quart_passkeys.audit import (
    AuditLog,
    configure_file_logging,
    logger,
    remove_file_logging,
)


class BrokenHandler(logging.Handler):
    def emit(self, record):
        raise OSError("disk full")

    def handleError(self, record):
        raise OSError("disk full")


@pytest.fixture
def file_handler(tmp_path):
    handler = configure_file_logging(tmp_path / "logs")
    yield handler
    remove_file_logging(handler)


def test_info_includes_structured_meta(caplog):
    with caplog.at_level(logging.INFO, logger="quart_passkeys.audit"):
        AuditLog().info("REG-OPTIONS issued", userId="alice", rpID="localhost")

    assert caplog.records[-1].getMessage() == (
        'REG-OPTIONS issued {"rpID": "localhost", "userId": "alice"}'
    )


def test_unserializable_meta_falls_back_to_repr(caplog):
    marker = object()
    with caplog.at_level(logging.ERROR, logger="quart_passkeys.audit"):
        AuditLog().error("REG-VERIFY failed", value=marker)

    assert repr(marker) in caplog.records[-1].getMessage()


def test_handler_failure_does_not_raise():
    target = logging.getLogger("quart_passkeys.audit.broken")
    handler = BrokenHandler()
    target.addHandler(handler)
    try:
        AuditLog(target).error("AUTH-VERIFY failed", userId="alice")
    finally:
        target.removeHandler(handler)


def test_file_logging_writes_server_log(file_handler, tmp_path):
    AuditLog().info("AUTH-VERIFY succeeded", userId="alice", counter=5)
    file_handler.flush()

    lines = (tmp_path / "logs" / "server.log").read_text(encoding="utf-8").splitlines()
    assert lines[-1].endswith(
        '[INFO] AUTH-VERIFY succeeded {"counter": 5, "userId": "alice"}'
    )
    assert configure_file_logging(tmp_path / "logs") is file_handler


def test_create_app_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("RP_ID", "example.com")
    monkeypatch.setenv("RP_NAME", "Example")
    monkeypatch.setenv("RP_ORIGIN", "https://example.com")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))

    app = create_app()
    passkeys = app.extensions["passkeys"]
    try:
        assert passkeys.config.rp_id == "example.com"
        assert passkeys.config.rp_name == "Example"
        assert passkeys.config.default_origin == "https://example.com"
        assert passkeys.storage.path == tmp_path / "data" / "webauthn.json"
        assert (tmp_path / "logs").is_dir()
    finally:
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler):
                logger.removeHandler(handler)
                handler.close()


def _passkeys_app(log_dir):
    app = Quart(__name__)
    app.config.update(PASSKEY_LOG_DIR=str(log_dir))
    return Passkeys(app)


def _lines(path):
    return path.read_text(encoding="utf-8").splitlines() if path.exists() else []


def test_file_logging_is_scoped_to_each_app(tmp_path):
    first = _passkeys_app(tmp_path / "first")
    second = _passkeys_app(tmp_path / "second")
    try:
        first.audit.info("REG-OPTIONS issued", userId="alice")
        second.audit.info("AUTH-OPTIONS issued", userId="bob")
        first._log_handler.flush()
        second._log_handler.flush()

        first_lines = _lines(tmp_path / "first" / "server.log")
        second_lines = _lines(tmp_path / "second" / "server.log")
        assert len(first_lines) == 1 and "alice" in first_lines[0]
        assert len(second_lines) == 1 and "bob" in second_lines[0]
    finally:
        remove_file_logging(first._log_handler)
        remove_file_logging(second._log_handler)


def test_init_app_replaces_its_previous_file_handler(tmp_path):
    passkeys = _passkeys_app(tmp_path / "old")
    old_handler = passkeys._log_handler

    passkeys.app.config["PASSKEY_LOG_DIR"] = str(tmp_path / "new")
    passkeys.init_app(passkeys.app)
    try:
        assert old_handler not in logger.handlers
        assert passkeys._log_handler in logger.handlers

        passkeys.audit.info("AUTH-VERIFY succeeded", userId="alice")
        passkeys._log_handler.flush()

        assert _lines(tmp_path / "old" / "server.log") == []
        assert len(_lines(tmp_path / "new" / "server.log")) == 1
    finally:
        remove_file_logging(passkeys._log_handler)
