# client -> server
AUTHENTICATE = "authenticate"
JOIN_CHAT = "join-chat"
SEND_MESSAGE = "send-message"
JOIN_SCHEDULE_CHAT = "join-schedule-chat"
LEAVE_SCHEDULE_CHAT = "leave-schedule-chat"
SEND_SCHEDULE_MESSAGE = "send-schedule-message"

# server -> client
AUTHENTICATED = "authenticated"
ERROR = "error"
NOTIFICATION = "notification"
SCHEDULE_UPDATED = "schedule-updated"
CHAT_HISTORY = "chat-history"
CHAT_MESSAGE = "chat-message"
ONLINE_USERS = "online-users"
SCHEDULE_CHAT_HISTORY = "schedule-chat-history"
SCHEDULE_CHAT_MESSAGE = "schedule-chat-message"
SCHEDULE_MESSAGE_NOTIFICATION = "schedule-message-notification"
USER_JOINED_SCHEDULE_CHAT = "user-joined-schedule-chat"
USER_LEFT_SCHEDULE_CHAT = "user-left-schedule-chat"


def schedule_room(schedule_id: int) -> str:
    return f"schedule-{schedule_id}"
