# store/events.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class NotificationKind(str, Enum):
    PROGRESS = "progress"
    SUCCESS = "success"
    FAILURE = "failure"
    SYNC_FAILED = "sync_failed"
    UNAVAILABLE = "unavailable"
    RESTORED = "restored"
    REMINDER = "reminder"


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"
    EXPORT = "export"
    RECONNECT = "reconnect"
    LEAVE_REQUEST = "leave_request"


@dataclass(frozen=True)
class NotificationEvent:
    """通知シンクに渡すイベント（種類は NotificationKind で閉じている）"""

    kind: NotificationKind
    feature: str
    operation: Optional[Operation] = None
    message: Optional[str] = None
    record: Any = None
