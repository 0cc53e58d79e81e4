# store/state.py
"""コンソール全体の状態コンテナとアクセサ

状態は明示的に生成してSessionControllerや各ResourceStoreに参照で渡す。
ミラーの書き換えは所有するResourceStore（休暇申請はLeaveRequestLedger）だけが行う。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class EntityKind(str, Enum):
    EMPLOYEES = "employees"
    DEPARTMENTS = "departments"
    ATTENDANCES = "attendances"
    LEAVE_REQUESTS = "leave_requests"


class Capability(str, Enum):
    EMPLOYEES = "employees"
    DEPARTMENTS = "departments"
    ATTENDANCES = "attendances"
    FILE_TRANSFER = "file_transfer"


class Availability(str, Enum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class AuthMode(str, Enum):
    NONE = "none"
    LOGIN = "login"
    SIGNUP = "signup"


class TransferDirection(str, Enum):
    IMPORT = "import"
    EXPORT = "export"


@dataclass
class SessionState:
    is_authenticated: bool = False
    pending_auth_mode: AuthMode = AuthMode.NONE
    access_token: Optional[str] = None
    user: Optional[dict] = None


@dataclass
class ConsoleState:
    session: SessionState = field(default_factory=SessionState)
    mirrors: dict = field(default_factory=lambda: {kind: [] for kind in EntityKind})
    loading: dict = field(default_factory=lambda: {kind: False for kind in EntityKind})
    availability: dict = field(
        default_factory=lambda: {cap: Availability.UNKNOWN for cap in Capability}
    )
    transfers: dict = field(default_factory=dict)
    # ログアウトのたびに進む。取得開始時の値と異なれば結果を捨てる
    epoch: int = 0


def get_mirror(state: ConsoleState, kind: EntityKind) -> list:
    return list(state.mirrors[kind])


def set_mirror(state: ConsoleState, kind: EntityKind, records: list) -> None:
    """ミラーを丸ごと置き換える（idが重複した場合は後勝ち）"""
    by_id = {}
    for record in records:
        by_id[record.id] = record
    state.mirrors[kind] = list(by_id.values())


def clear_mirror(state: ConsoleState, kind: EntityKind) -> None:
    state.mirrors[kind] = []


def find_record(state: ConsoleState, kind: EntityKind, record_id: int) -> Optional[Any]:
    return next((r for r in state.mirrors[kind] if r.id == record_id), None)


def upsert_record(state: ConsoleState, kind: EntityKind, record: Any) -> None:
    records = state.mirrors[kind]
    if any(r.id == record.id for r in records):
        state.mirrors[kind] = [record if r.id == record.id else r for r in records]
    else:
        state.mirrors[kind] = [*records, record]


def set_loading(state: ConsoleState, kind: EntityKind, loading: bool) -> None:
    state.loading[kind] = loading


def is_loading(state: ConsoleState, kind: EntityKind) -> bool:
    return state.loading[kind]


def get_availability(state: ConsoleState, capability: Capability) -> Availability:
    return state.availability[capability]


def set_availability(state: ConsoleState, capability: Capability, value: Availability) -> None:
    state.availability[capability] = value


def set_transfer_flag(
    state: ConsoleState, kind: EntityKind, direction: TransferDirection, active: bool
) -> None:
    state.transfers[(kind, direction)] = active


def is_transferring(state: ConsoleState, kind: EntityKind, direction: TransferDirection) -> bool:
    return state.transfers.get((kind, direction), False)


def clear_transfer_flags(state: ConsoleState) -> None:
    state.transfers.clear()


def advance_epoch(state: ConsoleState) -> int:
    """進行中の取得結果を無効にする（ログアウト時）"""
    state.epoch += 1
    return state.epoch
