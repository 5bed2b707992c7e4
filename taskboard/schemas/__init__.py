"""Schema modules."""
from taskboard.schemas.task import Priority, Task, TaskCreate, TaskUpdate, TaskMove
from taskboard.schemas.column import TaskColumn, ColumnCreate, ColumnUpdate
from taskboard.schemas.profile import Profile, ProfileRole, ProfileUpdate
from taskboard.schemas.events import ChangeEvent, EventKind
from taskboard.schemas.auth import AuthUser, TokenRequest, TokenResponse
from taskboard.schemas.views import (
    BoardColumnResponse,
    BoardResponse,
    CalendarEventResponse,
    MemberWorkloadResponse,
    WorkloadResponse,
    SyncStatusResponse,
)
