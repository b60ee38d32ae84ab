"""End-to-end tests for the webhook endpoints."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from fb_messenger.errors import UnrecognizedEventError
from fb_messenger.models.events import EventKind, Message, MessageReaction


class TestWebhookVerification:
    """Test Facebook webhook verification endpoint."""

    def test_webhook_verification_success(self, test_client):
        response = test_client.get(
            "/webhook",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": "test-verify-token",
                "hub.challenge": "challenge-123",
            },
        )

        assert response.status_code == 200
        assert response.text == "challenge-123"

    def test_webhook_verification_fails_invalid_token(self, test_client):
        response = test_client.get(
            "/webhook",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": "wrong-token",
                "hub.challenge": "challenge-123",
            },
        )

        assert response.status_code == 403

    def test_webhook_verification_fails_wrong_mode(self, test_client):
        response = test_client.get(
            "/webhook",
            params={"hub.mode": "unsubscribe", "hub.verify_token": "test-verify-token"},
        )

        assert response.status_code == 403


class TestWebhookDelivery:
    """Test POST /webhook classification and dispatch."""

    def test_message_dispatched_to_hook(self, test_client, registry, make_entry, make_envelope):
        handler = MagicMock()
        registry.register(EventKind.MESSAGE, handler)

        response = test_client.post(
            "/webhook",
            json=make_envelope(make_entry(message={"mid": "m-1", "text": "Hello, what can you help me with?"})),
        )

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        handler.assert_called_once()
        event = handler.call_args.args[0]
        assert event.text == "Hello, what can you help me with?"
        assert event.sender_id == "user-456"

    def test_reaction_dispatched(self, test_client, registry, sample_sections, make_entry, make_envelope):
        handler = MagicMock()
        registry.register(EventKind.MESSAGE_REACTION, handler)

        response = test_client.post(
            "/webhook",
            json=make_envelope(make_entry(**sample_sections[EventKind.MESSAGE_REACTION])),
        )

        assert response.status_code == 200
        event = handler.call_args.args[0]
        assert isinstance(event, MessageReaction)
        assert event.emoji == "\U0001f604"

    def test_unregistered_kind_is_ok(self, test_client, make_entry, make_envelope):
        response = test_client.post(
            "/webhook", json=make_envelope(make_entry(read={"watermark": 1}))
        )

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_non_page_object_ignored(self, test_client, registry):
        handler = MagicMock()
        registry.register(EventKind.MESSAGE, handler)

        response = test_client.post(
            "/webhook",
            json={"object": "instagram", "entry": [{"messaging": [{"message": {"text": "x"}}]}]},
        )

        assert response.json() == {"status": "ignored"}
        handler.assert_not_called()

    def test_unrecognized_entry_rejected_fail_fast(self, test_client, registry, make_entry, make_envelope):
        handler = MagicMock()
        registry.register(EventKind.MESSAGE, handler)

        response = test_client.post(
            "/webhook",
            json=make_envelope(make_entry(mystery={"x": 1}), make_entry(message={"text": "later"})),
        )

        assert response.status_code == 400
        assert response.json() == {"status": "error"}
        handler.assert_not_called()

    def test_malformed_envelope_rejected(self, test_client):
        response = test_client.post("/webhook", json={"object": "page", "entry": "nope"})

        assert response.status_code == 400

    def test_invalid_json_rejected(self, test_client):
        response = test_client.post(
            "/webhook",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400

    def test_handler_error_propagates(self, test_client, registry, make_entry, make_envelope):
        registry.register(EventKind.MESSAGE, MagicMock(side_effect=RuntimeError("hook failed")))

        with pytest.raises(RuntimeError, match="hook failed"):
            test_client.post("/webhook", json=make_envelope(make_entry(message={"text": "x"})))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"sender": "123"},
            {"message": {"text": "x", "quick_reply": "x"}},
            {"message": {"text": "x", "reaction": "like"}},
        ],
        ids=["sender", "quick-reply", "nested-reaction"],
    )
    def test_malformed_nested_shape_rejected(self, test_client, overrides, make_entry, make_envelope):
        entry = make_entry(message={"text": "x"})
        entry.update(overrides)

        response = test_client.post("/webhook", json=make_envelope(entry))

        assert response.status_code == 400
        assert response.json() == {"status": "error"}

    def test_non_object_messaging_item_rejected(self, test_client, registry, make_entry, make_envelope):
        handler = MagicMock()
        registry.register(EventKind.MESSAGE, handler)

        response = test_client.post(
            "/webhook", json=make_envelope(make_entry(message={"text": "first"}), "garbage")
        )

        assert response.status_code == 400
        handler.assert_called_once()

    def test_hook_raising_unrecognized_event_propagates(self, test_client, registry, make_entry, make_envelope):
        """A hook's own UnrecognizedEventError is a handler error, not a bad request."""
        registry.register(
            EventKind.MESSAGE, MagicMock(side_effect=UnrecognizedEventError("hook lookup failed"))
        )

        with pytest.raises(UnrecognizedEventError, match="hook lookup failed"):
            test_client.post("/webhook", json=make_envelope(make_entry(message={"text": "x"})))

    def test_hook_raising_validation_error_propagates(self, test_client, registry, make_entry, make_envelope):
        def handler(event):
            Message.model_validate({"seq": "not-a-number"})

        registry.register(EventKind.MESSAGE, handler)

        with pytest.raises(ValidationError):
            test_client.post("/webhook", json=make_envelope(make_entry(message={"text": "x"})))


class TestAppFactory:
    """Test create_app()."""

    def test_each_app_owns_its_registry(self, mock_settings, mock_logfire):
        from fb_messenger.main import create_app

        first, second = create_app(), create_app()

        assert first.state.hook_registry is not second.state.hook_registry

    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
