# campus_booking/models/__init__.py
from .base import Base
from .user import UserProfile, RoleTag
from .teacher import TeacherProfile
from .organization import OrganizationSettings, GLOBAL_SETTINGS_ID
from .availability import TeacherAvailability, BusyBlock
from .appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from .notification import Notification

__all__ = [
    "Base",
    "UserProfile",
    "RoleTag",
    "TeacherProfile",
    "OrganizationSettings",
    "GLOBAL_SETTINGS_ID",
    "TeacherAvailability",
    "BusyBlock",
    "Appointment",
    "AppointmentStatus",
    "ACTIVE_STATUSES",
    "Notification",
]
