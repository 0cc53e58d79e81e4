# services/resource_api.py
import logging
from pathlib import Path
from typing import Any, Generic, TypeVar

from schemas.decode import DecodeFailure, decode
from schemas.entities import (
    Attendance,
    AttendanceCreate,
    AttendanceUpdate,
    Department,
    DepartmentCreate,
    DepartmentUpdate,
    Employee,
    EmployeeCreate,
    EmployeeUpdate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_confirmation_only(raw: Any) -> bool:
    """更新APIが更新後のレコードではなく確認文字列や空ボディを返したか"""
    return raw is None or isinstance(raw, (str, bytes))


class ResourceAPI(Generic[T]):
    """1種類のエンティティに対するREST API（/{path}, /{path}/{id}）"""

    def __init__(self, client, path: str, schema, create_schema, update_schema, label: str):
        self._client = client
        self.path = path
        self.schema = schema
        self._create_schema = create_schema
        self._update_schema = update_schema
        self._label = label

    def _url(self, suffix: str = "") -> str:
        return f"/{self.path}{suffix}"

    def _payload(self, schema, payload: Any, context: str) -> dict:
        model = decode(schema, payload, context)
        return model.model_dump(mode="json", by_alias=True, exclude_unset=True)

    async def get_all(self) -> list[T]:
        data = await self._client.get(self._url())
        return decode(list[self.schema], data, f"{self._label}.get_all")

    async def get_by_id(self, id: int) -> T:
        data = await self._client.get(self._url(f"/{id}"))
        return decode(self.schema, data, f"{self._label}.get_by_id")

    async def create(self, payload: Any) -> T:
        body = self._payload(self._create_schema, payload, f"{self._label}.create.payload")
        created = await self._client.post(self._url(), body)
        return decode(self.schema, created, f"{self._label}.create.response")

    async def update(self, id: int, payload: Any) -> T:
        """更新後のレコードを返す

        応答がスキーマに合わず、かつ文字列または空ボディの場合に限り、
        get_by_idで最新の値を取り直す。それ以外の不正な応答はDecodeFailure。
        """
        body = self._payload(self._update_schema, payload, f"{self._label}.update.payload")
        updated = await self._client.put(self._url(f"/{id}"), body)

        context = f"{self._label}.update.response"
        try:
            return decode(self.schema, updated, context)
        except DecodeFailure:
            if not _is_confirmation_only(updated):
                raise
            logger.info("[DECODE][%s] 確認応答のみのため id=%s を再取得します", context, id)
            return await self.get_by_id(id)

    async def remove(self, id: int) -> None:
        await self._client.delete(self._url(f"/{id}"))


class AttendanceResourceAPI(ResourceAPI[Attendance]):
    """勤怠API（従業員別・期間指定の検索を含む）"""

    async def get_by_employee(self, employee_id: int) -> list[Attendance]:
        data = await self._client.get(self._url(f"/employee/{employee_id}"))
        return decode(list[Attendance], data, f"{self._label}.get_by_employee")

    async def get_by_employee_and_date(self, employee_id: int, day: str) -> list[Attendance]:
        data = await self._client.get(self._url(f"/employee/{employee_id}/date/{day}"))
        return decode(list[Attendance], data, f"{self._label}.get_by_employee_and_date")

    async def get_by_date_range(self, start_date: str, end_date: str) -> list[Attendance]:
        data = await self._client.get(
            self._url(f"/date-range?startDate={start_date}&endDate={end_date}")
        )
        return decode(list[Attendance], data, f"{self._label}.get_by_date_range")


class FileAPI:
    """一括インポート・エクスポート（/{resource}/import, /{resource}/export）"""

    def __init__(self, client):
        self._client = client

    async def import_file(self, resource: str, file_path: Path) -> Any:
        return await self._client.upload(f"/{resource}/import", Path(file_path))

    async def export_file(self, resource: str) -> bytes:
        return await self._client.download(f"/{resource}/export")


def employee_api(client) -> ResourceAPI[Employee]:
    return ResourceAPI(client, "employees", Employee, EmployeeCreate, EmployeeUpdate, "EmployeeAPI")


def department_api(client) -> ResourceAPI[Department]:
    return ResourceAPI(
        client, "departments", Department, DepartmentCreate, DepartmentUpdate, "DepartmentAPI"
    )


def attendance_api(client) -> AttendanceResourceAPI:
    return AttendanceResourceAPI(
        client, "attendances", Attendance, AttendanceCreate, AttendanceUpdate, "AttendanceAPI"
    )
