"""Facebook webhook endpoints.

GET answers the subscription handshake. POST validates the envelope and hands
it to the application's HookRegistry. Hooks are plain synchronous callables,
so the registry runs in a worker thread rather than on the event loop.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from fb_messenger.config import get_settings
from fb_messenger.constants import WEBHOOK_OBJECT_PAGE
from fb_messenger.errors import EnvelopeEntryError
from fb_messenger.models.messenger import WebhookEnvelope
from fb_messenger.services.hooks import HookRegistry

logger = logging.getLogger(__name__)
router = APIRouter()


def get_hook_registry(request: Request) -> HookRegistry:
    """Dependency returning the registry owned by the running app."""
    return request.app.state.hook_registry


@router.get("")
async def verify_webhook(request: Request):
    """Facebook webhook verification endpoint."""
    settings = get_settings()

    mode = request.query_params.get("hub.mode")
    token = request.query_params.get("hub.verify_token")
    challenge = request.query_params.get("hub.challenge")

    if mode == "subscribe" and token == settings.facebook_verify_token:
        logger.info("Webhook verified successfully")
        return PlainTextResponse(challenge or "")

    logger.warning("Webhook verification failed")
    return Response(status_code=403)


@router.post("")
async def handle_webhook(
    request: Request,
    registry: HookRegistry = Depends(get_hook_registry),
):
    """Classify and dispatch every event of an incoming webhook delivery.

    Malformed deliveries get a 400. Errors raised by hooks propagate.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Rejected webhook delivery: body is not JSON")
        return JSONResponse(status_code=400, content={"status": "error"})

    if not isinstance(payload, dict) or payload.get("object") != WEBHOOK_OBJECT_PAGE:
        return {"status": "ignored"}

    try:
        envelope = WebhookEnvelope.model_validate(payload)
    except ValidationError as e:
        logger.warning("Rejected webhook delivery: %s", e)
        return JSONResponse(status_code=400, content={"status": "error"})

    try:
        kinds = await run_in_threadpool(registry.receive, envelope)
    except EnvelopeEntryError as e:
        logger.warning("Rejected webhook delivery: %s", e)
        return JSONResponse(status_code=400, content={"status": "error"})

    logger.info("Dispatched %d webhook event(s)", len(kinds))
    return {"status": "ok"}
