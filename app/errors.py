"""
Error conditions raised by the booking core.

Every condition carries a stable ``code``, a user-facing ``message`` and a
``details`` dict so the route layer can render it without knowing which
service raised it.
"""

from typing import Any, Dict, Optional


class BookingCoreError(Exception):
    """Base class for all booking-core conditions."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': False,
            'code': self.code,
            'message': self.message,
            'details': self.details,
        }


class InvalidInput(BookingCoreError):
    """Malformed quantity, missing ids, empty item lists and similar."""

    status_code = 400


class Unauthorized(BookingCoreError):
    status_code = 401


class Forbidden(BookingCoreError):
    status_code = 403


class NotFound(BookingCoreError):
    status_code = 404


class SlotConflict(BookingCoreError):
    """The interval overlaps a live booking on the same physical court."""

    status_code = 409


class InsufficientStock(BookingCoreError):
    status_code = 409


class ModificationWindowClosed(BookingCoreError):
    """Too close to the booking start to reschedule or cancel."""

    status_code = 422


class QuantityOutOfRange(BookingCoreError):
    status_code = 422


class IllegalQuantityReduction(BookingCoreError):
    """Issuing may only raise a quantity; reductions go through returns."""

    status_code = 422


class QuotaExceeded(BookingCoreError):
    status_code = 429
