# store/leave_requests.py
from datetime import date, datetime, timezone

from schemas.decode import decode
from schemas.entities import LeaveRequest, LeaveStatus, LeaveType
from schemas.normalize import normalize_leave_request, parse_date
from store.events import NotificationEvent, NotificationKind, Operation
from store.state import ConsoleState, EntityKind, clear_mirror, find_record, get_mirror, upsert_record

LEAVE_REQUEST_LABEL = "休暇申請"


def _now() -> datetime:
    """テスト時にモック可能な現在時刻取得"""
    return datetime.now(timezone.utc)


class LeaveRequestLedger:
    """休暇申請のクライアント側ミラー（サーバーに対応するAPIはない）"""

    def __init__(self, state: ConsoleState, sink, author: str = "console"):
        self._state = state
        self._sink = sink
        self._author = author

    @property
    def mirror(self) -> list[LeaveRequest]:
        return get_mirror(self._state, EntityKind.LEAVE_REQUESTS)

    def submit(
        self,
        employee_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str,
    ) -> LeaveRequest:
        """申請を登録する（idは既存の最大値+1、状態は申請中）"""
        start = parse_date(start_date)
        end = parse_date(end_date)
        if end < start:
            raise ValueError("終了日は開始日以降を指定してください")

        now = _now()
        next_id = max((r.id for r in self.mirror), default=0) + 1
        raw = {
            "id": next_id,
            "createdAt": now.isoformat(),
            "updatedAt": now.isoformat(),
            "createdBy": self._author,
            "updatedBy": self._author,
            "leaveType": int(leave_type),
            "status": int(LeaveStatus.PENDING),
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "daysRequested": (end.date() - start.date()).days + 1,
            "reason": reason,
            "employeeId": employee_id,
        }
        record = normalize_leave_request(decode(LeaveRequest, raw, "LeaveRequestLedger.submit"))
        upsert_record(self._state, EntityKind.LEAVE_REQUESTS, record)
        self._sink.handle(
            NotificationEvent(
                NotificationKind.SUCCESS,
                LEAVE_REQUEST_LABEL,
                Operation.LEAVE_REQUEST,
                message=f"{start.date()}〜{end.date()}",
                record=record,
            )
        )
        return record

    def for_employee(self, employee_id: int) -> list[LeaveRequest]:
        return [r for r in self.mirror if r.employee_id == employee_id]

    def cancel(self, request_id: int) -> bool:
        record = find_record(self._state, EntityKind.LEAVE_REQUESTS, request_id)
        if record is None:
            return False
        cancelled = record.model_copy(
            update={"status": LeaveStatus.CANCELLED, "updated_at": _now()}
        )
        upsert_record(self._state, EntityKind.LEAVE_REQUESTS, cancelled)
        return True

    def reset(self) -> None:
        clear_mirror(self._state, EntityKind.LEAVE_REQUESTS)
