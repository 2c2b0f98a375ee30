from quart_passkeys.config import PasskeyConfig
from quart_passkeys.context import resolve_context


def test_rp_id_from_origin_header():
    context = resolve_context("https://example.com:3000", "example.com:3000")

    assert context.rp_id == "example.com"
    assert context.origin == "https://example.com:3000"
    assert context.rp_name is None


def test_configured_values_take_precedence():
    context = resolve_context(
        "https://other.test",
        "other.test",
        rp_id="example.com",
        rp_name="Example",
        origin="https://example.com",
    )

    assert context.rp_id == "example.com"
    assert context.rp_name == "Example"
    assert context.origin == "https://example.com"


def test_origin_falls_back_to_host_header():
    context = resolve_context(None, "localhost:3000")

    assert context.origin == "http://localhost:3000"
    assert context.rp_id == "localhost"


def test_invalid_origin_falls_back_to_host():
    context = resolve_context("not a url", "app.example.com:8443")

    assert context.origin == "not a url"
    assert context.rp_id == "app.example.com"


def test_nothing_to_resolve():
    context = resolve_context(None, None)

    assert context.origin is None
    assert context.rp_id is None
    assert context.rp_name is None


def test_config_defaults():
    config = PasskeyConfig()

    assert config.default_rp_id == "localhost"
    assert config.default_rp_name == "Passkey Demo"
    assert config.default_origin == "http://localhost:3000"
    assert config.timeout == 60_000


def test_config_from_mapping():
    config = PasskeyConfig.from_mapping(
        {
            "PASSKEY_RP_ID": "example.com",
            "PASSKEY_RP_ORIGIN": "",
            "PASSKEY_CHALLENGE_TTL": None,
        }
    )

    assert config.rp_id == "example.com"
    assert config.origin is None
    assert config.default_origin == "http://example.com:3000"
    assert config.challenge_ttl is None
    assert config.require_user_verification is True
