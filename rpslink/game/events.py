from enum import Enum, auto


class CommandKind(Enum):
    PHONE_CHOICE = auto()
    WATCH_CHOICE = auto()
    RESULT = auto()
    RESET = auto()
    UNKNOWN = auto()


class ClientEvent(str, Enum):
    CHOOSE = "CHOOSE"
    RESET = "RESET"
    PLAY_AGAIN = "PLAY_AGAIN"
    PING = "PING"


class Notification(str, Enum):
    STATUS_CHANGED = "STATUS_CHANGED"
    RESULT_AVAILABLE = "RESULT_AVAILABLE"
    INPUT_ENABLED_CHANGED = "INPUT_ENABLED_CHANGED"
    DIAGNOSTIC = "DIAGNOSTIC"
