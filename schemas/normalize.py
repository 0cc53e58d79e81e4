# schemas/normalize.py
from datetime import date, datetime, timezone
from typing import Any

from schemas.entities import Attendance, Department, Employee, LeaveRequest


def _now() -> datetime:
    """テスト時にモック可能な現在時刻取得"""
    return datetime.now(timezone.utc)


def parse_date(value: Any) -> datetime:
    """日付らしき値をUTCのdatetimeに変換する（解釈できない場合は現在時刻）

    数値はエポックミリ秒、タイムゾーンなしの値はUTCとみなす。
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, bool):
        return _now()
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return _now()
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return _now()
    else:
        return _now()

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_employee(employee: Employee) -> Employee:
    return employee.model_copy(update={"hire_date": parse_date(employee.hire_date)})


def normalize_department(department: Department) -> Department:
    return department.model_copy(
        update={
            "created_at": parse_date(department.created_at),
            "updated_at": parse_date(department.updated_at),
        }
    )


def normalize_attendance(attendance: Attendance) -> Attendance:
    return attendance.model_copy(update={"date": parse_date(attendance.date)})


def normalize_leave_request(leave_request: LeaveRequest) -> LeaveRequest:
    update = {
        "created_at": parse_date(leave_request.created_at),
        "updated_at": parse_date(leave_request.updated_at),
        "start_date": parse_date(leave_request.start_date),
        "end_date": parse_date(leave_request.end_date),
    }
    if leave_request.reviewed_at is not None:
        update["reviewed_at"] = parse_date(leave_request.reviewed_at)
    return leave_request.model_copy(update=update)
