"""Document Notification Dispatcher - FastAPI Application.

Receives document-change triggers from the backend database, decides whether
the change warrants an email, sends it, and records notification state back
onto the document.
"""

import hashlib
import hmac
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import get_settings
from .dispatcher import NotificationDispatcher
from .events import RecordKind
from .fingerprint import fingerprint_record
from .normalizer import normalize_status, parse_trigger
from .notification_config import NotificationConfig, get_notification_config
from .notification_filter import NotificationFilter
from .notification_state import read_notification_state
from .renderer import get_renderer
from .stores import get_backends

# Configure logging
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"


# =============================================================================
# Dependencies
# =============================================================================

_dispatcher: Optional[NotificationDispatcher] = None


def build_dispatcher() -> NotificationDispatcher:
    """Build the dispatcher from settings (configuration is read once)."""
    config = get_notification_config()
    logger.info(
        f"Config: throttle={config.throttle_minutes}m, dryRun={config.dry_run}, "
        f"apps={config.is_kind_enabled(RecordKind.APPLICATION)}, "
        f"payStubs={config.is_kind_enabled(RecordKind.PAY_STUB)}"
    )
    return NotificationDispatcher(
        config=config,
        backends=get_backends(settings.store_backend, settings),
        renderer=get_renderer(settings.email_format),
    )


def get_dispatcher() -> NotificationDispatcher:
    """Get the process-wide dispatcher (lazily built)."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher()
    return _dispatcher


def get_config() -> NotificationConfig:
    return get_notification_config()


# =============================================================================
# App Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting notification dispatcher...")
    dispatcher = get_dispatcher()

    yield

    client = getattr(dispatcher.backends.store, "client", None)
    if client is not None and hasattr(client, "close"):
        await client.close()
    logger.info("Notification dispatcher stopped")


app = FastAPI(
    title="Document Notification Dispatcher",
    description="Email notifications for document changes",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Pydantic Models
# =============================================================================


class EvaluateResponse(BaseModel):
    kind: str
    status: Optional[str]
    notifyWorthy: bool
    notificationType: str
    fingerprint: str
    duplicate: bool


# =============================================================================
# Routes
# =============================================================================


@app.get("/health")
async def health_check(config: NotificationConfig = Depends(get_config)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dryRun": config.dry_run,
    }


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Verify webhook signature (hex HMAC-SHA256 of the raw body)."""
    if not secret:
        return True  # Skip verification if no secret configured
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature or "")


@app.post("/")
@app.post("/webhooks/document")
async def document_webhook(
    request: Request,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Handle a document-change trigger."""
    body = await request.body()

    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not verify_signature(body, signature, settings.webhook_secret):
        raise HTTPException(status_code=401, detail="Invalid signature")

    trigger = parse_trigger(dict(request.headers), body)
    try:
        outcome = await dispatcher.handle(trigger)
    except Exception as e:
        logger.exception(f"Unhandled error for {trigger.document_id or 'unknown'}")
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)

    return JSONResponse(outcome.to_response(), status_code=outcome.http_status)


@app.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_document(
    request: Request, config: NotificationConfig = Depends(get_config)
):
    """Run the decision rules on a record without any side effects."""
    trigger = parse_trigger(dict(request.headers), await request.body())
    if not trigger.document:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    collection = config.get_collection(trigger.collection_id)
    if collection is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unrecognized collection: {trigger.collection_id}",
        )

    record = trigger.document
    kind = collection.kind
    notif_filter = NotificationFilter(config)
    fingerprint = fingerprint_record(kind, record)

    return EvaluateResponse(
        kind=kind.value,
        status=(
            normalize_status(record.get("status")).value
            if kind == RecordKind.APPLICATION
            else None
        ),
        notifyWorthy=notif_filter.is_notify_worthy(kind, record),
        notificationType=notif_filter.notification_type(kind, record),
        fingerprint=fingerprint,
        duplicate=read_notification_state(record).is_duplicate(fingerprint),
    )
