from fastapi import APIRouter, Depends, Query

from game_queue.api.v1.schemas.base import ApiOut
from game_queue.api.v1.schemas.session import ListSessionsOut, SessionOut
from game_queue.domain.session.session_registry import SessionRegistry, get_session_registry
from game_queue.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("")
async def list_sessions(
    registry: SessionRegistry = Depends(get_session_registry),
    guild_id: str | None = Query(None, description="Only sessions of this guild"),
) -> ApiOut[ListSessionsOut]:
    """List the live sessions, oldest first."""
    snapshots = sorted(registry.snapshots(), key=lambda s: s.start_time)
    if guild_id is not None:
        snapshots = [s for s in snapshots if s.guild_id == guild_id]

    sessions = [SessionOut.from_snapshot(s) for s in snapshots]
    return ApiOut[ListSessionsOut](results=ListSessionsOut(sessions=sessions, total=len(sessions)))


@router.get("/{host_id}")
async def get_session(
    host_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiOut[SessionOut]:
    """Get the live session hosted by ``host_id``."""
    session = registry.get_session(host_id)
    if session is None:
        raise AppError(
            errcode=AppErrorCode.E_NO_ACTIVE_SESSION,
            errmesg=f"No active session for host {host_id}",
            status_code=HttpStatusCode.NOT_FOUND,
        )

    return ApiOut[SessionOut](results=SessionOut.from_snapshot(session.snapshot()))
