from .department import Department
from .user import User
from .concern import Concern
from .chat_room import ChatRoom
from .concern_message import ConcernMessage
from .announcement import Announcement
from .cross_department_assignment import CrossDepartmentAssignment
from .escalation_log import EscalationLog
from .notification import Notification

# Re-export role constants for tests and callers expecting them under studentlink.models
from .user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF, ROLE_STUDENT

__all__ = [
    "Department",
    "User",
    "Concern",
    "ChatRoom",
    "ConcernMessage",
    "Announcement",
    "CrossDepartmentAssignment",
    "EscalationLog",
    "Notification",
    "ROLE_ADMIN",
    "ROLE_DEPARTMENT_HEAD",
    "ROLE_STAFF",
    "ROLE_STUDENT",
]
