# store/console.py
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from schemas.normalize import normalize_attendance, normalize_department, normalize_employee
from services.notifier import NotificationSink
from services.preferences import PreferenceStore
from services.resource_api import FileAPI, attendance_api, department_api, employee_api
from store.file_transfer import FileTransferTracker
from store.leave_requests import LeaveRequestLedger
from store.reconnect import ReconnectOrchestrator
from store.resource_store import (
    AttendanceStore,
    ResourceStore,
    describe_attendance,
    describe_department,
    describe_employee,
)
from store.session import SessionController
from store.state import Capability, ConsoleState, EntityKind


@dataclass
class Console:
    state: ConsoleState
    client: object
    employees: ResourceStore
    departments: ResourceStore
    attendances: AttendanceStore
    file_transfer: FileTransferTracker
    leave_requests: LeaveRequestLedger
    reconnect: ReconnectOrchestrator
    session: SessionController
    preferences: Optional[PreferenceStore] = None

    @property
    def stores(self) -> list[ResourceStore]:
        return [self.employees, self.departments, self.attendances]

    def store_for(self, kind: EntityKind) -> ResourceStore:
        return {
            EntityKind.EMPLOYEES: self.employees,
            EntityKind.DEPARTMENTS: self.departments,
            EntityKind.ATTENDANCES: self.attendances,
        }[kind]

    async def reconnect_all(self) -> bool:
        return await self.reconnect.reconnect_all()

    def reset_all(self) -> None:
        self.session.logout()

    async def set_api_base_url(self, url: str) -> str:
        """接続を確認してからベースURLを保存し、全機能に再接続する"""
        normalized = await self.client.test_connection(url)
        if self.preferences is not None:
            self.preferences.save(normalized)
        self.client.set_base_url(normalized)
        await self.reconnect.reconnect_all()
        return normalized


def build_console(
    client,
    sink: NotificationSink,
    config: dict,
    state: ConsoleState = None,
    preferences: PreferenceStore = None,
) -> Console:
    """HTTPクライアントと通知シンクから同期コア一式を組み立てる"""
    state = state or ConsoleState()
    health_check = client.check_health

    employees = ResourceStore(
        state,
        EntityKind.EMPLOYEES,
        Capability.EMPLOYEES,
        "従業員API",
        employee_api(client),
        sink,
        health_check,
        normalize_employee,
        describe_employee,
    )
    departments = ResourceStore(
        state,
        EntityKind.DEPARTMENTS,
        Capability.DEPARTMENTS,
        "部署API",
        department_api(client),
        sink,
        health_check,
        normalize_department,
        describe_department,
    )
    attendances = AttendanceStore(
        state,
        EntityKind.ATTENDANCES,
        Capability.ATTENDANCES,
        "勤怠API",
        attendance_api(client),
        sink,
        health_check,
        normalize_attendance,
        describe_attendance,
    )
    stores = [employees, departments, attendances]

    file_transfer = FileTransferTracker(
        state,
        FileAPI(client),
        sink,
        health_check,
        stores={store.kind: store for store in stores},
        export_dir=Path(config["transfers"]["export_dir"]),
    )
    leave_requests = LeaveRequestLedger(state, sink)
    reconnect = ReconnectOrchestrator(stores, file_transfer, sink)
    session = SessionController(
        state,
        stores,
        file_transfer,
        leave_requests,
        sink,
        missing_features=config["features"]["missing"],
    )

    return Console(
        state=state,
        client=client,
        employees=employees,
        departments=departments,
        attendances=attendances,
        file_transfer=file_transfer,
        leave_requests=leave_requests,
        reconnect=reconnect,
        session=session,
        preferences=preferences,
    )
