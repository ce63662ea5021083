"""Notification dispatcher.

Handles one document-change trigger end to end: classify the record,
re-read its authoritative state, run the eligibility, duplicate and throttle
checks, resolve the recipient, send, and persist notification state.
Every early exit is a structured Outcome.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from .events import EventKind, RecordKind, TriggerEvent
from .fingerprint import fingerprint_record
from .normalizer import mask_email, normalize_text
from .notification_config import CollectionConfig, NotificationConfig
from .notification_filter import ApplicationSignals, NotificationFilter
from .notification_state import build_notification_update, read_notification_state
from .renderer import (
    ApplicationEmailContext,
    EmailRenderer,
    HtmlEmailRenderer,
    PayStubEmailContext,
    RenderedEmail,
    build_portal_link,
)
from .stores.base import (
    BackendError,
    Backends,
    ConflictError,
    NotFoundError,
    OutgoingMessage,
    UserInfo,
)
from .throttle import may_notify

logger = logging.getLogger(__name__)


class IgnoreReason(Enum):
    """Why a trigger did not lead to a notification."""

    NO_PAYLOAD = "no_payload"
    MISSING_METADATA = "missing_metadata"
    MISSING_DOCUMENT = "missing_document"
    MISSING_COLLECTION_OR_DATABASE = "missing_collection_or_database"
    UNRECOGNIZED_COLLECTION = "unrecognized_collection"
    DELETE_EVENT = "delete_event"
    NON_UPDATE_EVENT = "non_update_event"
    APPLICATION_DISABLED = "application_disabled"
    PAY_STUB_DISABLED = "pay_stub_disabled"
    NO_MEANINGFUL_CHANGE = "no_meaningful_change"
    DUPLICATE = "duplicate"
    THROTTLED = "throttled"
    MISSING_USER_ID = "missing_userId"
    MISSING_EMPLOYEE = "missing_employee"
    MISSING_USER = "missing_user"
    MISSING_EMAIL = "missing_email"


class ErrorReason(Enum):
    """Operational failures talking to a collaborator."""

    STORE_UNAVAILABLE = "store_unavailable"
    DIRECTORY_UNAVAILABLE = "directory_unavailable"
    SEND_FAILED = "send_failed"
    PERSIST_FAILED = "persist_failed"
    PERSIST_CONFLICT = "persist_conflict"


class OutcomeStatus(Enum):
    IGNORED = "ignored"
    SENT = "sent"
    DRY_RUN = "dry_run"
    ERROR = "error"


@dataclass
class Outcome:
    """Result of handling one trigger.

    Attributes:
        status: ignored | sent | dry_run | error
        reason: Ignore or error reason code
        kind: Record kind, once known
        notification_type: Semantic label of the (would-be) notification
        detail: Extra context for errors
    """

    status: OutcomeStatus
    reason: Optional[Enum] = None
    kind: Optional[RecordKind] = None
    notification_type: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def ignored(cls, reason: IgnoreReason, kind: Optional[RecordKind] = None) -> "Outcome":
        return cls(OutcomeStatus.IGNORED, reason=reason, kind=kind)

    @classmethod
    def sent(cls, kind: RecordKind, notification_type: str) -> "Outcome":
        return cls(OutcomeStatus.SENT, kind=kind, notification_type=notification_type)

    @classmethod
    def dry_run(cls, kind: RecordKind, notification_type: str) -> "Outcome":
        return cls(OutcomeStatus.DRY_RUN, kind=kind, notification_type=notification_type)

    @classmethod
    def error(
        cls, reason: ErrorReason, detail: str, kind: Optional[RecordKind] = None
    ) -> "Outcome":
        return cls(OutcomeStatus.ERROR, reason=reason, kind=kind, detail=detail)

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.ERROR

    @property
    def http_status(self) -> int:
        return 200 if self.ok else 500

    def to_response(self) -> dict:
        """Render as the JSON response body."""
        if self.status == OutcomeStatus.IGNORED:
            return {"ok": True, "ignored": self.reason.value}
        if self.status == OutcomeStatus.ERROR:
            return {"ok": False, "error": f"{self.reason.value}: {self.detail}"}
        response = {"ok": True, "type": self.kind.value}
        if self.status == OutcomeStatus.SENT:
            response["sent"] = True
        else:
            response["dryRun"] = True
        return response


@dataclass
class _Recipient:
    user_id: str
    employee: Optional[dict] = None


def get_applicant_name(record: dict) -> Optional[str]:
    """Best display name on an application record."""
    full_name = normalize_text(record.get("fullName"))
    if full_name:
        return full_name
    parts = [
        normalize_text(record.get(key))
        for key in ("firstName", "middleName", "lastName", "suffix")
    ]
    parts = [part for part in parts if part]
    if parts:
        return " ".join(parts)
    for key in ("businessName", "ownerName", "responsiblePersonName"):
        value = normalize_text(record.get(key))
        if value:
            return value
    return None


def get_reference(record: dict) -> str:
    """Human-facing reference for an application record."""
    reference = normalize_text(record.get("referenceNumber")) or normalize_text(
        record.get("nationalIdNumber")
    )
    if reference:
        return reference
    document_id = record.get("$id") or record.get("id")
    if document_id:
        return str(document_id)[:10].upper()
    return "Not provided"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDispatcher:
    """Decides on and delivers notifications for document-change triggers."""

    def __init__(
        self,
        config: NotificationConfig,
        backends: Backends,
        renderer: Optional[EmailRenderer] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config
        self.backends = backends
        self.renderer = renderer or HtmlEmailRenderer()
        self.filter = NotificationFilter(config)
        self.clock = clock

    async def handle(self, trigger: TriggerEvent) -> Outcome:
        """Handle one trigger.

        Args:
            trigger: Normalized trigger from normalizer.parse_trigger

        Returns:
            Outcome describing what happened
        """
        if not trigger.document:
            logger.info("Ignored: no payload")
            return Outcome.ignored(IgnoreReason.NO_PAYLOAD)

        document_id = trigger.document_id
        if not document_id:
            logger.info("Ignored: missing document metadata")
            return Outcome.ignored(IgnoreReason.MISSING_METADATA)

        collection_id = trigger.collection_id
        database_id = trigger.database_id or self.config.database_id
        if not collection_id or not database_id:
            logger.info(f"Ignored: missing collection or database for {document_id}")
            return Outcome.ignored(IgnoreReason.MISSING_COLLECTION_OR_DATABASE)

        collection = self.config.get_collection(collection_id)
        if collection is None:
            logger.info(f"Ignored: unrecognized collection {collection_id}")
            return Outcome.ignored(IgnoreReason.UNRECOGNIZED_COLLECTION)

        kind = collection.kind
        ref = f"{collection_id}/{document_id}"
        logger.info(
            f"Event {trigger.event_name or 'unknown'} ({trigger.event_kind.value}) for {ref}"
        )

        if trigger.event_kind == EventKind.DELETE:
            logger.info(f"Ignored: delete event for {ref}")
            return Outcome.ignored(IgnoreReason.DELETE_EVENT, kind)
        if kind == RecordKind.APPLICATION and trigger.event_kind != EventKind.UPDATE:
            logger.info(f"Ignored: {trigger.event_kind.value} event for application {ref}")
            return Outcome.ignored(IgnoreReason.NON_UPDATE_EVENT, kind)

        # Authoritative state: the trigger payload may predate concurrent edits
        try:
            record = await self.backends.store.get(database_id, collection_id, document_id)
        except NotFoundError:
            logger.info(f"Ignored: {ref} no longer exists")
            return Outcome.ignored(IgnoreReason.MISSING_DOCUMENT, kind)
        except BackendError as e:
            logger.warning(f"Degraded: using trigger payload for {ref}, fetch failed: {e}")
            record = trigger.document

        if not self.filter.is_kind_enabled(kind):
            reason = (
                IgnoreReason.PAY_STUB_DISABLED
                if kind == RecordKind.PAY_STUB
                else IgnoreReason.APPLICATION_DISABLED
            )
            logger.info(f"Ignored: {kind.value} notifications disabled for {ref}")
            return Outcome.ignored(reason, kind)

        if not self.filter.is_notify_worthy(kind, record):
            logger.info(f"Ignored: no meaningful change for {ref}")
            return Outcome.ignored(IgnoreReason.NO_MEANINGFUL_CHANGE, kind)

        state = read_notification_state(record)
        fingerprint = fingerprint_record(kind, record)
        if state.is_duplicate(fingerprint):
            logger.info(f"Ignored: duplicate notification for {ref}")
            return Outcome.ignored(IgnoreReason.DUPLICATE, kind)

        now = self.clock()
        if not may_notify(state.last_notified_at, now, self.config.throttle_minutes):
            logger.info(f"Ignored: throttled notification for {ref}")
            return Outcome.ignored(IgnoreReason.THROTTLED, kind)

        notification_type = self.filter.notification_type(kind, record)

        try:
            recipient = await self._resolve_recipient(kind, record, database_id)
        except BackendError as e:
            logger.error(f"Employee lookup failed for {ref}: {e}")
            return Outcome.error(ErrorReason.STORE_UNAVAILABLE, str(e), kind)
        if isinstance(recipient, IgnoreReason):
            logger.info(f"Ignored: {recipient.value} for {ref}")
            return Outcome.ignored(recipient, kind)

        if self.config.dry_run:
            return self._dry_run(kind, record, ref, notification_type)

        try:
            user = await self.backends.directory.get(recipient.user_id)
        except NotFoundError:
            logger.info(f"Ignored: user {recipient.user_id} not found for {ref}")
            return Outcome.ignored(IgnoreReason.MISSING_USER, kind)
        except BackendError as e:
            logger.error(f"User lookup failed for {ref}: {e}")
            return Outcome.error(ErrorReason.DIRECTORY_UNAVAILABLE, str(e), kind)

        if not normalize_text(user.email):
            logger.info(f"Ignored: user has no email for {ref}")
            return Outcome.ignored(IgnoreReason.MISSING_EMAIL, kind)

        email = self._render(kind, collection, record, recipient, user)
        masked = mask_email(user.email)

        try:
            await self.backends.sender.send(
                OutgoingMessage(
                    recipient_user_id=recipient.user_id,
                    subject=email.subject,
                    body=email.body,
                    is_html=email.is_html,
                )
            )
        except BackendError as e:
            logger.error(f"Send failed for {ref} to {masked}: {e}")
            return Outcome.error(ErrorReason.SEND_FAILED, str(e), kind)

        # Persist the fingerprint computed above, not a recomputed one
        update = build_notification_update(now, notification_type, fingerprint)
        try:
            await self.backends.store.update(
                database_id,
                collection_id,
                document_id,
                update,
                expected_hash=state.last_notified_hash or "",
            )
        except ConflictError as e:
            logger.error(f"Email sent to {masked} but state not persisted for {ref}: {e}")
            return Outcome.error(ErrorReason.PERSIST_CONFLICT, str(e), kind)
        except (BackendError, NotFoundError) as e:
            logger.error(f"Email sent to {masked} but state not persisted for {ref}: {e}")
            return Outcome.error(ErrorReason.PERSIST_FAILED, str(e), kind)

        logger.info(f"Email sent: {ref} ({notification_type}) to {masked}")
        return Outcome.sent(kind, notification_type)

    async def _resolve_recipient(self, kind: RecordKind, record: dict, database_id: str):
        """Find the user to notify.

        Returns:
            _Recipient, or the IgnoreReason explaining why there is none

        Raises:
            BackendError: If the employee lookup fails in transport
        """
        if kind == RecordKind.APPLICATION:
            user_id = normalize_text(record.get("userId"))
            if not user_id:
                return IgnoreReason.MISSING_USER_ID
            return _Recipient(user_id=user_id)

        employee_id = normalize_text(record.get("employeeId"))
        if not employee_id:
            return IgnoreReason.MISSING_EMPLOYEE
        try:
            employee = await self.backends.store.get(
                database_id, self.config.employees_collection_id, employee_id
            )
        except NotFoundError:
            return IgnoreReason.MISSING_EMPLOYEE

        user_id = normalize_text(employee.get("userId"))
        if not user_id:
            return IgnoreReason.MISSING_USER_ID
        return _Recipient(user_id=user_id, employee=employee)

    def _dry_run(
        self, kind: RecordKind, record: dict, ref: str, notification_type: str
    ) -> Outcome:
        """Report what would be sent without touching directory or sender."""
        if kind == RecordKind.APPLICATION:
            fallback = normalize_text(record.get("userEmail") or record.get("email"))
            if not fallback:
                logger.info(f"Ignored: dry run missing email for {ref}")
                return Outcome.ignored(IgnoreReason.MISSING_EMAIL, kind)
            logger.info(f"Dry run: {notification_type} email to {mask_email(fallback)} ({ref})")
        else:
            logger.info(f"Dry run: {notification_type} email for {ref}")
        return Outcome.dry_run(kind, notification_type)

    def _render(
        self,
        kind: RecordKind,
        collection: CollectionConfig,
        record: dict,
        recipient: _Recipient,
        user: UserInfo,
    ) -> RenderedEmail:
        document_id = record.get("$id") or record.get("id")
        base_url = self.config.portal_base_url

        if kind == RecordKind.PAY_STUB:
            employee = recipient.employee or {}
            return self.renderer.render_pay_stub(
                PayStubEmailContext(
                    reference=str(document_id or "Pay stub"),
                    link=build_portal_link(base_url, f"citizen-portal/pay-stubs/{document_id}"),
                    employee_name=normalize_text(employee.get("fullName")) or user.name,
                    period_name=normalize_text(record.get("periodName")),
                )
            )

        signals = ApplicationSignals.from_record(record)
        return self.renderer.render_application(
            ApplicationEmailContext(
                application_label=collection.label,
                status=signals.status,
                reference=get_reference(record),
                link=build_portal_link(
                    base_url,
                    f"citizen-portal/applications/{document_id}?source={collection.source}",
                ),
                name=get_applicant_name(record) or user.name,
                admin_notes=signals.admin_notes,
                needs_action_note=signals.needs_action_note,
                rejection_reason=signals.rejection_reason,
            )
        )
