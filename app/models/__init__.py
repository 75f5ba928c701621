# app/models/__init__.py
from app.models.user import User, UserRole, ApiLog
from app.models.facility import Facility, Court, Booking, SportType, LocationType, BookingStatus, ACTIVE_BOOKING_STATUSES
from app.models.equipment import (
    Equipment,
    EquipmentRequest,
    EquipmentRequestItem,
    EquipmentRequestStatus,
    ReturnCondition,
    OPEN_REQUEST_STATUSES,
)

__all__ = [
    'User', 'UserRole', 'ApiLog',
    'Facility', 'Court', 'Booking', 'SportType', 'LocationType', 'BookingStatus', 'ACTIVE_BOOKING_STATUSES',
    'Equipment', 'EquipmentRequest', 'EquipmentRequestItem', 'EquipmentRequestStatus', 'ReturnCondition',
    'OPEN_REQUEST_STATUSES',
]
