"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Settings: settings, mock_settings
2. Webhook data: sample_sections, make_entry, make_envelope
3. Registry / app: registry, test_client
4. Infrastructure: respx_mock, logfire_capture, mock_logfire
"""

import os
from contextlib import contextmanager
from unittest.mock import MagicMock, Mock, patch

import pytest
import respx

# Allow logfire calls in tests without a configured project
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")



# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def settings():
    """Settings instance with test values and small limits."""
    from fb_messenger.config import Settings

    return Settings(
        facebook_verify_token="test-verify-token",
        graph_api_base_url="https://graph.facebook.com",
        graph_api_version="v18.0",
        graph_api_read_timeout_seconds=5.0,
        graph_api_send_timeout_seconds=120.0,
        pagination_max_pages=10,
        env="local",
        logfire_token=None,
        sentry_dsn=None,
    )


@pytest.fixture
def mock_settings(monkeypatch, settings):
    """Patch get_settings everywhere it is imported."""
    monkeypatch.setattr("fb_messenger.config.get_settings", lambda: settings)
    monkeypatch.setattr("fb_messenger.api.webhook.get_settings", lambda: settings)
    monkeypatch.setattr("fb_messenger.main.get_settings", lambda: settings)
    monkeypatch.setattr("fb_messenger.logging_config.get_settings", lambda: settings)
    monkeypatch.setattr(
        "fb_messenger.services.graph_client.get_settings", lambda: settings
    )
    return settings


# =============================================================================
# Webhook Data
# =============================================================================


@pytest.fixture
def sample_sections():
    """One discriminator section per event kind, keyed by EventKind."""
    from fb_messenger.models.events import EventKind

    return {
        EventKind.MESSAGE: {
            "message": {"mid": "mid.1457764197618:41d102a3e1ae206a38", "seq": 73, "text": "hello, world!"}
        },
        EventKind.MESSAGE_ECHO: {
            "message": {
                "is_echo": True,
                "app_id": 1517776481860111,
                "metadata": "DEVELOPER_DEFINED_METADATA_STRING",
                "mid": "mid.1457764197618:41d102a3e1ae206a38",
                "seq": 73,
                "text": "hello, world!",
            }
        },
        EventKind.MESSAGE_REACTION: {
            "reaction": {
                "reaction": "smile",
                "emoji": "\U0001f604",
                "action": "react",
                "mid": "mid.1457764197618:41d102a3e1ae206a38",
            }
        },
        EventKind.DELIVERY: {
            "delivery": {
                "mids": ["mid.1458668856218:ed81099e15d3f4f233"],
                "watermark": 1458668856253,
                "seq": 37,
            }
        },
        EventKind.POSTBACK: {
            "postback": {"title": "Get Started", "payload": "USER_DEFINED_PAYLOAD"}
        },
        EventKind.OPTIN: {"optin": {"ref": "PASS_THROUGH_PARAM"}},
        EventKind.READ: {"read": {"watermark": 1458668856253, "seq": 38}},
        EventKind.ACCOUNT_LINKING: {
            "account_linking": {
                "status": "linked",
                "authorization_code": "PASS_THROUGH_AUTHORIZATION_CODE",
            }
        },
        EventKind.REFERRAL: {
            "referral": {"ref": "my-ref", "source": "SHORTLINK", "type": "OPEN_THREAD"}
        },
        EventKind.PAYMENT: {
            "payment": {
                "payload": "DEVELOPER_DEFINED_PAYLOAD",
                "requested_user_info": {"contact_name": "Peter Chang"},
                "payment_credential": {"provider_type": "stripe", "charge_id": "ch_18tmdBEoNIH3FPJHa60ep123"},
                "amount": {"currency": "USD", "amount": "29.62"},
            }
        },
        EventKind.POLICY_ENFORCEMENT: {
            "policy-enforcement": {"action": "block", "reason": "The bot violated our Platform Policies"}
        },
    }


@pytest.fixture
def make_entry():
    """Factory building a raw messaging entry around discriminator sections."""

    def _make_entry(sender_id="user-456", recipient_id="page-123", timestamp=1458692752478, **sections):
        entry = {
            "sender": {"id": sender_id},
            "recipient": {"id": recipient_id},
            "timestamp": timestamp,
        }
        entry.update(sections)
        return entry

    return _make_entry


@pytest.fixture
def make_envelope():
    """Factory wrapping messaging entries in a page webhook envelope."""

    def _make_envelope(*messaging, page_id="page-123"):
        return {
            "object": "page",
            "entry": [{"id": page_id, "time": 1458692752478, "messaging": list(messaging)}],
        }

    return _make_envelope


# =============================================================================
# Registry / App
# =============================================================================


@pytest.fixture
def registry(mock_logfire):
    """Empty hook registry with logging silenced."""
    from fb_messenger.services.hooks import HookRegistry

    return HookRegistry()


@pytest.fixture
def test_client(mock_settings, mock_logfire, registry):
    """FastAPI TestClient for E2E tests, sharing the ``registry`` fixture."""
    from fastapi.testclient import TestClient

    from fb_messenger.main import create_app

    return TestClient(create_app(registry))


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    with respx.mock:
        yield respx


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    This fixture patches Logfire to capture log calls for assertion.
    """
    captured_logs = []

    def capture(level):
        def _capture(*args, **kwargs):
            captured_logs.append((level, args, kwargs))

        return _capture

    with (
        patch("logfire.info", side_effect=capture("info")),
        patch("logfire.warn", side_effect=capture("warn")),
        patch("logfire.error", side_effect=capture("error")),
    ):
        yield captured_logs


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Mock Logfire for tests that don't need to verify logging behavior.
    """

    @contextmanager
    def mock_span(*args, **kwargs):
        yield {}

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warn = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()
    mock_logfire_module.instrument_pydantic = Mock()
    mock_logfire_module.instrument_httpx = Mock()

    monkeypatch.setattr("fb_messenger.services.hooks.logfire", mock_logfire_module)
    monkeypatch.setattr(
        "fb_messenger.services.graph_client.logfire", mock_logfire_module
    )
    monkeypatch.setattr("fb_messenger.logging_config.logfire", mock_logfire_module)
    monkeypatch.setattr("fb_messenger.main.logfire", mock_logfire_module)

    return mock_logfire_module
