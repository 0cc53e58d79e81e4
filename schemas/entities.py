# schemas/entities.py
from datetime import date, datetime
from enum import IntEnum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

# 日付系フィールドはサーバーの返却形式がまちまちなので受け口を広く取る（正規化はnormalize側）
DateLike = Union[datetime, date, str, int, float]

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d:[0-5]\d$"


class Gender(IntEnum):
    MALE = 1
    FEMALE = 2


class LeaveType(IntEnum):
    ANNUAL = 1
    SICK = 2
    MATERNITY = 3
    PATERNITY = 4
    PERSONAL = 5
    UNPAID = 6


class LeaveStatus(IntEnum):
    PENDING = 1
    APPROVED = 2
    REJECTED = 3
    CANCELLED = 4


class WireModel(BaseModel):
    """camelCaseのワイヤ形式とsnake_caseの属性を対応付ける基底モデル"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class BaseEntity(WireModel):
    id: int
    created_at: DateLike
    updated_at: DateLike
    created_by: str
    updated_by: str


# --- 従業員 ---

class Employee(WireModel):
    id: int
    unique_id: str
    full_name: str
    gender: Gender
    email: EmailStr
    phone_number: str
    address: str
    position: str
    salary: float
    department_name: str
    hire_date: DateLike


class EmployeeCreate(WireModel):
    first_name: str
    last_name: str
    gender: Gender
    email: EmailStr
    phone_number: str
    address: str
    position: str
    salary: float
    department_id: int
    hire_date: DateLike


class EmployeeUpdate(WireModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[Gender] = None
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    position: Optional[str] = None
    salary: Optional[float] = None
    department_id: Optional[int] = None
    hire_date: Optional[DateLike] = None


class EmployeeReference(WireModel):
    """休暇申請に埋め込まれる従業員の参照（未知のフィールドは保持する）"""

    model_config = ConfigDict(extra="allow")

    id: int
    unique_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    department_id: Optional[int] = None


# --- 部署 ---

class Department(BaseEntity):
    name: str
    code: str
    description: str


class DepartmentCreate(WireModel):
    name: str
    code: str
    description: Optional[str] = None


class DepartmentUpdate(WireModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None


# --- 勤怠 ---

class Attendance(WireModel):
    # 勤怠APIは付加情報を返すことがあるため未知のフィールドは捨てる
    model_config = ConfigDict(extra="ignore")

    id: int
    date: DateLike
    clock_in: str = Field(pattern=TIME_PATTERN)
    clock_out: str = Field(pattern=TIME_PATTERN)
    break_duration: str = Field(pattern=TIME_PATTERN)
    worked_hours: float
    overtime_hours: float
    notes: Optional[str] = None
    employee_id: int
    employee_name: str


class AttendanceCreate(WireModel):
    date: DateLike
    clock_in: str = Field(pattern=TIME_PATTERN)
    clock_out: str = Field(pattern=TIME_PATTERN)
    break_duration: str = Field(pattern=TIME_PATTERN)
    notes: Optional[str] = None
    employee_id: int


class AttendanceUpdate(WireModel):
    date: Optional[DateLike] = None
    clock_in: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    clock_out: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    break_duration: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    notes: Optional[str] = None
    employee_id: Optional[int] = None


# --- 休暇申請 ---

class LeaveRequest(BaseEntity):
    leave_type: LeaveType
    status: LeaveStatus
    start_date: DateLike
    end_date: DateLike
    days_requested: float
    reason: str
    manager_comment: Optional[str] = None
    reviewed_at: Optional[DateLike] = None
    reviewed_by: Optional[str] = None
    employee_id: Optional[int] = None
    employee: Optional[EmployeeReference] = None
