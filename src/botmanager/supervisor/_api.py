"""FastAPI control endpoints for the supervisor.

This module provides REST API endpoints for inspecting the supervised bots,
starting and stopping them, and shutting the supervisor down.
"""

# pyright: reportUnusedFunction=false
# FastAPI route handlers are registered via decorators, not direct calls

from typing import TYPE_CHECKING, Never

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from botmanager.exceptions import (
    SupervisorNotRunningError,
    UnitAlreadyRunningError,
    UnitNotFoundError,
)

if TYPE_CHECKING:
    from ._models import UnitStatus
    from ._shutdown import ShutdownCoordinator
    from ._supervisor import Supervisor


class UnitStatusResponse(BaseModel):
    """Response model for bot status."""

    name: str
    state: str
    pid: int | None
    uptime_seconds: int | None
    uptime: str | None
    restart_attempts: int
    max_attempts: int | None


class SupervisorStatusResponse(BaseModel):
    """Response model for overall supervisor status."""

    bots: dict[str, UnitStatusResponse]
    total_bots: int
    running_bots: int
    draining: bool


class MessageResponse(BaseModel):
    """Response model for simple message responses."""

    message: str


def _build_unit_status(
    unit_status: "UnitStatus",  # noqa: UP037
    max_attempts: int | None,
) -> UnitStatusResponse:
    """Build a UnitStatusResponse from a status report row.

    Args:
        unit_status: Status of one bot.
        max_attempts: Restart ceiling, or None when unlimited.

    Returns:
        UnitStatusResponse with display fields filled in.
    """
    return UnitStatusResponse(
        name=unit_status.name,
        state=unit_status.state.value,
        pid=unit_status.pid,
        uptime_seconds=unit_status.uptime_seconds,
        uptime=unit_status.uptime if unit_status.pid is not None else None,
        restart_attempts=unit_status.restart_attempts,
        max_attempts=max_attempts,
    )


def _raise_not_found(name: str, cause: UnitNotFoundError) -> Never:
    """Raise HTTP 404 for bot not found.

    Raises:
        HTTPException: Always raises with 404 status.
    """
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Bot '{name}' not found",
    ) from cause


def _raise_conflict(cause: Exception) -> Never:
    """Raise HTTP 409 for a request the supervisor's state does not allow.

    Raises:
        HTTPException: Always raises with 409 status.
    """
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=str(cause),
    ) from cause


def create_control_router(
    supervisor: "Supervisor",  # noqa: UP037
    coordinator: "ShutdownCoordinator",  # noqa: UP037
) -> APIRouter:
    """Create a FastAPI router for supervisor control endpoints.

    Args:
        supervisor: The Supervisor instance to control.
        coordinator: The ShutdownCoordinator used by the shutdown endpoint.

    Returns:
        A FastAPI APIRouter with control endpoints.
    """
    router = APIRouter(prefix="/supervisor", tags=["supervisor"])

    def max_attempts() -> int | None:
        policy = supervisor.policy
        return None if policy.unlimited else policy.max_attempts

    @router.get("/status", response_model=SupervisorStatusResponse)
    async def get_supervisor_status() -> SupervisorStatusResponse:
        """Get overall supervisor status."""
        bots = {
            unit_status.name: _build_unit_status(unit_status, max_attempts())
            for unit_status in supervisor.describe_units()
        }

        return SupervisorStatusResponse(
            bots=bots,
            total_bots=len(bots),
            running_bots=len(supervisor.live_names),
            draining=supervisor.draining,
        )

    @router.get("/units", response_model=list[UnitStatusResponse])
    async def list_units() -> list[UnitStatusResponse]:
        """List all discovered bots."""
        return [
            _build_unit_status(unit_status, max_attempts())
            for unit_status in supervisor.describe_units()
        ]

    @router.get("/units/{name}", response_model=UnitStatusResponse)
    async def get_unit_status(name: str) -> UnitStatusResponse:
        """Get status of a specific bot."""
        try:
            _ = supervisor.get_unit(name)
        except UnitNotFoundError as e:
            _raise_not_found(name, e)

        unit_status = next(s for s in supervisor.describe_units() if s.name == name)
        return _build_unit_status(unit_status, max_attempts())

    @router.post("/units/{name}/start", response_model=MessageResponse)
    async def start_unit(name: str) -> MessageResponse:
        """Start a specific bot, clearing its counter if it had given up."""
        try:
            await supervisor.request_start(name)
        except UnitNotFoundError as e:
            _raise_not_found(name, e)
        except (UnitAlreadyRunningError, SupervisorNotRunningError) as e:
            _raise_conflict(e)

        return MessageResponse(message=f"Bot '{name}' start requested")

    @router.post("/units/{name}/stop", response_model=MessageResponse)
    async def stop_unit(name: str) -> MessageResponse:
        """Stop a specific bot."""
        try:
            stopped = await supervisor.stop(name)
        except UnitNotFoundError as e:
            _raise_not_found(name, e)
        except SupervisorNotRunningError as e:
            _raise_conflict(e)

        if not stopped:
            return MessageResponse(message=f"Bot '{name}' is not running")
        return MessageResponse(message=f"Bot '{name}' stop requested")

    @router.post("/shutdown", response_model=MessageResponse)
    async def shutdown_supervisor() -> MessageResponse:
        """Trigger graceful shutdown of the supervisor."""
        if not await coordinator.trigger(reason="api"):
            return MessageResponse(message="Shutdown already in progress")
        return MessageResponse(message="Shutdown initiated")

    return router
