from app.db.database import Base

# Import models
from app.db.models.users import Users, Role, Gender
from app.db.models.availabilities import Availabilities, AvailabilityStatus
from app.db.models.schedules import Schedules, ScheduleAssignments
from app.db.models.chat_rooms import ChatRooms, ChatParticipants, ChatMessages, ChatReadCursors
from app.db.models.notifications import Notifications, NotificationKind
from app.db.models.messages import Messages
from app.db.models.experiences import Experiences

__all__ = [
    "Base",
    # Models
    "Users",
    "Availabilities",
    "Schedules",
    "ScheduleAssignments",
    "ChatRooms",
    "ChatParticipants",
    "ChatMessages",
    "ChatReadCursors",
    "Notifications",
    "Messages",
    "Experiences",
    # Enums
    "Role",
    "Gender",
    "AvailabilityStatus",
    "NotificationKind",
]
