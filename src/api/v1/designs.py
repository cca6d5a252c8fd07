"""Design review endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Query

from src.api.deps import LifecycleManager
from src.kernel.display import display_name, status_color, status_label
from src.kernel.errors import NotFound
from src.kernel.models.design import DesignStatus
from src.orchestration.state_machine import TRANSITION_ACTIONS, valid_transitions
from src.schemas.common import ErrorResponse
from src.schemas.design import (
    DesignRecord,
    DesignResponse,
    StatusBoardResponse,
    StatusColumn,
    StatusTransitionRequest,
    TransitionAction,
)

router = APIRouter()


def _actions(status: str) -> List[TransitionAction]:
    return [
        TransitionAction(status=target, label=TRANSITION_ACTIONS[(status, target)])
        for target in valid_transitions(status)
    ]


def to_response(design: DesignRecord) -> DesignResponse:
    status = design.status.value
    return DesignResponse(
        **design.model_dump(mode="json"),
        status_label=status_label(status),
        status_color=status_color(status),
        owner_name=display_name(design.owner),
        allowed_transitions=_actions(status),
    )


@router.get("/designs", response_model=list[DesignResponse])
async def list_designs(
    manager: LifecycleManager,
    status: Optional[str] = Query(None, description="Only designs with this status"),
):
    """List designs, newest first."""
    designs = await manager.list_designs(status)
    return [to_response(d) for d in designs]


@router.get("/designs/board", response_model=StatusBoardResponse)
async def designs_board(manager: LifecycleManager):
    """All designs grouped by status with per-status counts."""
    board = await manager.board()
    columns = [
        StatusColumn(
            status=s.value,
            label=status_label(s.value),
            color=status_color(s.value),
            count=board.counts[s.value],
            designs=[to_response(d) for d in board.groups[s.value]],
        )
        for s in DesignStatus
    ]
    return StatusBoardResponse(total=board.total, columns=columns)


@router.get("/designs/{design_id}", response_model=DesignResponse)
async def get_design(design_id: str, manager: LifecycleManager):
    """Get a single design with owner and reviewer profiles."""
    return to_response(await manager.get_design(design_id))


@router.patch(
    "/designs/{design_id}/status",
    response_model=DesignResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def transition_design_status(
    design_id: str,
    data: StatusTransitionRequest,
    manager: LifecycleManager,
):
    """Move a design to a new status (must be a legal transition)."""
    updated = await manager.transition(design_id, data.status)
    # Re-read for embedded profiles; a policy may allow the write but hide the row
    try:
        return to_response(await manager.get_design(design_id))
    except NotFound:
        return to_response(updated)
