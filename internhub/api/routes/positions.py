"""
Position API Endpoints

POST   /api/v1/positions       - Enterprise creates a position
GET    /api/v1/positions       - Search positions
GET    /api/v1/positions/{id}  - Position detail
PUT    /api/v1/positions/{id}  - Enterprise updates an owned position
DELETE /api/v1/positions/{id}  - Enterprise deletes an owned position
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from pydantic import BaseModel

from internhub.api.auth import Caller, get_current_caller, request_meta, require_role
from internhub.api.schemas import MessageResponse, Pagination, PositionOut
from internhub.models.position import PositionStatus
from internhub.models.user import Role
from internhub.services.position_service import get_position_service

router = APIRouter(prefix="/positions", tags=["positions"])


class PositionCreate(BaseModel):
    """Request body for POST /positions"""
    title: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    total_slots: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class PositionUpdate(BaseModel):
    """Request body for PUT /positions/{id}; omitted fields stay unchanged"""
    title: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    total_slots: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class PositionResponse(BaseModel):
    data: PositionOut


class PositionListResponse(BaseModel):
    data: List[PositionOut]
    pagination: Pagination


@router.post("", response_model=PositionResponse, status_code=201)
async def create_position(
    body: PositionCreate,
    request: Request,
    caller: Caller = Depends(require_role(Role.ENTERPRISE)),
):
    """
    Create a position with available_slots = total_slots.

    Raises:
        400: Invalid title, description, slots or dates
        404: Caller has no enterprise profile
    """
    position = await get_position_service().create_position(
        user_id=caller.user_id,
        title=body.title,
        description=body.description,
        total_slots=body.total_slots,
        start_date=body.start_date,
        end_date=body.end_date,
        requirements=body.requirements,
        meta=request_meta(request),
    )
    return PositionResponse(data=PositionOut.model_validate(position))


@router.get("", response_model=PositionListResponse)
async def list_positions(
    keyword: Optional[str] = Query(None, description="Search in title and description"),
    enterprise_id: Optional[int] = Query(None, description="Filter by enterprise"),
    status: Optional[PositionStatus] = Query(None, description="Filter by status (open, full, closed)"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
):
    """Search positions, newest first."""
    result = await get_position_service().list_positions(
        keyword=keyword, enterprise_id=enterprise_id, status=status, page=page, limit=limit
    )
    return PositionListResponse(
        data=[PositionOut.model_validate(position) for position in result["items"]],
        pagination=Pagination(
            total=result["total"],
            page=result["page"],
            limit=result["limit"],
            total_pages=result["total_pages"],
        ),
    )


@router.get("/{position_id}", response_model=PositionResponse)
async def get_position(
    position_id: int = Path(..., description="Position id"),
    caller: Caller = Depends(get_current_caller),
):
    position = await get_position_service().get_position(position_id)
    return PositionResponse(data=PositionOut.model_validate(position))


@router.put("/{position_id}", response_model=PositionResponse)
async def update_position(
    body: PositionUpdate,
    request: Request,
    position_id: int = Path(..., description="Position id"),
    caller: Caller = Depends(require_role(Role.ENTERPRISE)),
):
    """
    Update an owned position; status is re-derived from slots and dates.

    Raises:
        403: Position belongs to another enterprise
        404: Position not found
    """
    position = await get_position_service().update_position(
        position_id,
        caller.user_id,
        body.model_dump(exclude_unset=True),
        meta=request_meta(request),
    )
    return PositionResponse(data=PositionOut.model_validate(position))


@router.delete("/{position_id}", response_model=MessageResponse)
async def delete_position(
    request: Request,
    position_id: int = Path(..., description="Position id"),
    caller: Caller = Depends(require_role(Role.ENTERPRISE)),
):
    """
    Delete an owned position.

    Raises:
        409: Pending applications exist for the position
    """
    await get_position_service().delete_position(position_id, caller.user_id, meta=request_meta(request))
    return MessageResponse(message="Position deleted", data={"id": position_id})
