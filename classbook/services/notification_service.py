"""Booking notifications: message composition plus pluggable dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from html import escape
from typing import Optional, Protocol

try:
    import resend
except ModuleNotFoundError:  # pragma: no cover - runtime dependency guard
    resend = None  # type: ignore[assignment]

from classbook.domain.models import BookableInstance
from classbook.utils.calendar_links import add_event_link, search_event_link
from classbook.utils.config import Settings, get_settings
from classbook.utils.logger import get_logger


logger = get_logger(__name__)


class NotificationError(Exception):
    """Raised by dispatchers when a message could not be handed over."""


class NotificationDependencyError(NotificationError):
    """Raised when the Resend SDK is unavailable in the runtime."""


class NotificationDispatcher(Protocol):
    def send(self, recipient: str, subject: str, body: str) -> None:
        ...


@dataclass(frozen=True)
class OutgoingMessage:
    recipient: str
    subject: str
    body: str


class LoggingNotificationDispatcher:
    """Writes messages to the log instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[OutgoingMessage] = []

    def send(self, recipient: str, subject: str, body: str) -> None:
        self.sent.append(OutgoingMessage(recipient=recipient, subject=subject, body=body))
        logger.info("Notification to %s: %s", recipient, subject)


class ResendNotificationDispatcher:
    """Sends HTML email through the Resend API."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def send(self, recipient: str, subject: str, body: str) -> None:
        if resend is None:
            raise NotificationDependencyError(
                "Resend is not installed. Install 'resend' to enable email notifications."
            )
        if not self._settings.resend_api_key:
            raise NotificationError("RESEND_API_KEY is not configured")
        resend.api_key = self._settings.resend_api_key
        try:
            resend.Emails.send(
                {
                    "from": self._settings.notification_sender,
                    "to": [recipient],
                    "subject": subject,
                    "html": body,
                }
            )
        except Exception as exc:
            raise NotificationError(f"Could not send email to {recipient}: {exc}") from exc


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    if settings.notification_backend == "resend":
        return ResendNotificationDispatcher(settings)
    if settings.notification_backend != "log":
        logger.warning(
            "Unknown notification backend %r; falling back to log",
            settings.notification_backend,
        )
    return LoggingNotificationDispatcher()


class BookingNotifier:
    """Sends the booker/owner message pair for each booking transition.

    Delivery is best effort: a failed send is logged and never undoes the
    transition that triggered it.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        zone: tzinfo,
        app_url: Optional[str] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._zone = zone
        self._app_url = app_url

    def _deliver(self, recipient: str, subject: str, body: str) -> bool:
        try:
            self._dispatcher.send(recipient, subject, body)
            return True
        except Exception:
            logger.exception("Notification to %s failed (%s)", recipient, subject)
            return False

    def _footer(self) -> str:
        if not self._app_url:
            return ""
        return f'<p><a href="{escape(self._app_url)}">Open Classbook</a></p>'

    def _when(self, instance: BookableInstance) -> str:
        return f"{instance.date.strftime('%d/%m/%Y')} at {instance.hour:02d}:00"

    def booking_confirmed(self, instance: BookableInstance, booker_id: str) -> int:
        start = instance.starts_at(self._zone)
        room = escape(instance.room)
        owner = escape(instance.instructor_id)
        booker = escape(booker_id)
        booker_title = f"Lesson in {instance.room} with {instance.instructor_id}"
        owner_title = f"Lesson in {instance.room} booked by {booker_id}"
        booker_link = add_event_link(
            start,
            instance.duration_minutes,
            booker_title,
            details=f"Lesson booked with {instance.instructor_id} in {instance.room}.",
            location=instance.room,
        )
        owner_link = add_event_link(
            start,
            instance.duration_minutes,
            owner_title,
            details=f"Lesson booked by {booker_id} in {instance.room}.",
            location=instance.room,
        )
        delivered = 0
        delivered += self._deliver(
            booker_id,
            "Lesson booking confirmed",
            f"<p>Your lesson with {owner} in {room} on {self._when(instance)} is confirmed.</p>"
            f'<p><a href="{escape(booker_link)}">Add to Google Calendar</a></p>'
            + self._footer(),
        )
        delivered += self._deliver(
            instance.instructor_id,
            "New lesson booking received",
            f"<p>{booker} booked your lesson in {room} on {self._when(instance)}.</p>"
            f'<p><a href="{escape(owner_link)}">Add to Google Calendar</a></p>'
            + self._footer(),
        )
        return delivered

    def booking_cancelled(
        self,
        instance: BookableInstance,
        booker_id: str,
        cancelled_by: str,
    ) -> int:
        start = instance.starts_at(self._zone)
        room = escape(instance.room)
        owner = escape(instance.instructor_id)
        booker = escape(booker_id)
        booker_link = search_event_link(start, f"Lesson in {instance.room} with {instance.instructor_id}")
        owner_link = search_event_link(start, f"Lesson in {instance.room} booked by {booker_id}")
        by_owner = cancelled_by == instance.instructor_id
        cause = "was cancelled by the instructor" if by_owner else "was cancelled"

        delivered = 0
        delivered += self._deliver(
            booker_id,
            "Lesson cancelled by the instructor" if by_owner else "Lesson cancellation confirmed",
            f"<p>Your lesson with {owner} in {room} on {self._when(instance)} {cause}.</p>"
            f'<p><a href="{escape(booker_link)}">Find it in Google Calendar</a></p>'
            + self._footer(),
        )
        delivered += self._deliver(
            instance.instructor_id,
            "Lesson cancellation confirmed" if by_owner else "Booking cancelled by the booker",
            f"<p>The booking of {booker} in {room} on {self._when(instance)} was cancelled. "
            "The slot is open again.</p>"
            f'<p><a href="{escape(owner_link)}">Find it in Google Calendar</a></p>'
            + self._footer(),
        )
        return delivered
