"""Canonical vocabularies for statuses, roles, history kinds and notifications."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    # Derived for display only (validated and in the past), never stored.
    COMPLETED = "completed"

    @classmethod
    def from_label(cls, label: str) -> "ReservationStatus":
        """Translate a presentation label, including legacy synonyms."""
        key = label.strip().lower()
        try:
            return _STATUS_LABELS[key]
        except KeyError:
            raise ValueError(f"Unknown reservation status: {label!r}") from None


_STATUS_LABELS = {
    "pending": ReservationStatus.PENDING,
    "en_attente": ReservationStatus.PENDING,
    "validated": ReservationStatus.VALIDATED,
    "validee": ReservationStatus.VALIDATED,
    "confirmee": ReservationStatus.VALIDATED,
    "rejected": ReservationStatus.REJECTED,
    "rejetee": ReservationStatus.REJECTED,
    "refusee": ReservationStatus.REJECTED,
    "cancelled": ReservationStatus.CANCELLED,
    "annulee": ReservationStatus.CANCELLED,
    "completed": ReservationStatus.COMPLETED,
    "terminee": ReservationStatus.COMPLETED,
}

BLOCKING_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.VALIDATED})
CANCELLABLE_STATUSES = BLOCKING_STATUSES
EDITABLE_STATUSES = BLOCKING_STATUSES


class Role(str, Enum):
    USER = "user"
    RESPONSABLE = "responsable"
    ADMIN = "admin"


REVIEWER_ROLES = frozenset({Role.RESPONSABLE, Role.ADMIN})


class AlternativeStatus(str, Enum):
    """Owner decision on the slot a reviewer proposed when rejecting."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REFUSED = "refused"


class HistoryKind(str, Enum):
    RESERVATION_CREATED = "reservation_created"
    RESERVATION_VALIDATED = "reservation_validated"
    RESERVATION_REJECTED = "reservation_rejected"
    RESERVATION_CANCELLED = "reservation_cancelled"
    RESERVATION_DELETED = "reservation_deleted"
    RESERVATION_UPDATED = "reservation_updated"
    ALTERNATIVE_ACCEPTED = "alternative_accepted"
    ALTERNATIVE_REFUSED = "alternative_refused"
    USER_LOGIN = "user_login"
    INFO = "info"


class Perspective(str, Enum):
    ACTOR = "actor"
    SUBJECT = "subject"


class DateRange(str, Enum):
    """Rolling windows measured back from the query time."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @property
    def window(self) -> timedelta:
        return _RANGE_WINDOWS[self]


_RANGE_WINDOWS = {
    DateRange.TODAY: timedelta(days=1),
    DateRange.WEEK: timedelta(days=7),
    DateRange.MONTH: timedelta(days=30),
    DateRange.YEAR: timedelta(days=365),
}


class NotificationType(str, Enum):
    NEW_RESERVATION = "new_reservation"
    RESERVATION_VALIDATED = "reservation_validated"
    RESERVATION_REJECTED = "reservation_rejected"
    RESERVATION_CANCELLED = "reservation_cancelled"
    RESERVATION_CREATED_GROUP = "reservation_created_group"
    ADMIN_NEW_RESERVATION_GROUP = "admin_new_reservation_group"
    REMINDER = "reminder"
    ALTERNATIVE_ACCEPTED = "alternative_accepted"
    ALTERNATIVE_REFUSED = "alternative_refused"
    SYSTEM = "system"


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# type -> (severity, route the UI opens)
NOTIFICATION_ROUTING = {
    NotificationType.NEW_RESERVATION: (Severity.INFO, "/admin/reservations"),
    NotificationType.RESERVATION_VALIDATED: (Severity.SUCCESS, "/reservations"),
    NotificationType.RESERVATION_REJECTED: (Severity.ERROR, "/reservations"),
    NotificationType.RESERVATION_CANCELLED: (Severity.WARNING, "/admin/reservations"),
    NotificationType.RESERVATION_CREATED_GROUP: (Severity.SUCCESS, "/reservations"),
    NotificationType.ADMIN_NEW_RESERVATION_GROUP: (Severity.INFO, "/admin/reservations"),
    NotificationType.REMINDER: (Severity.INFO, "/reservations"),
    NotificationType.ALTERNATIVE_ACCEPTED: (Severity.SUCCESS, "/admin/reservations"),
    NotificationType.ALTERNATIVE_REFUSED: (Severity.WARNING, "/admin/reservations"),
    NotificationType.SYSTEM: (Severity.INFO, "/reservations"),
}
