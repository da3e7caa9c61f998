"""
Application API Endpoints

POST /api/v1/applications               - Student submits an application
GET  /api/v1/applications               - Applications visible to the caller
GET  /api/v1/applications/{id}          - Application detail
PUT  /api/v1/applications/{id}/approve  - Teacher approves (creates the internship)
PUT  /api/v1/applications/{id}/reject   - Teacher rejects with a reason
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from pydantic import BaseModel

from internhub.api.auth import Caller, get_current_caller, request_meta, require_role
from internhub.api.schemas import ApplicationOut, InternshipOut, Pagination
from internhub.models.application import ApplicationStatus
from internhub.models.user import Role
from internhub.services.application_service import get_application_service

router = APIRouter(prefix="/applications", tags=["applications"])


class ApplicationCreate(BaseModel):
    """Request body for POST /applications"""
    position_id: Optional[int] = None
    personal_statement: Optional[str] = None
    contact_info: Optional[str] = None


class RejectRequest(BaseModel):
    rejection_reason: Optional[str] = None


class ApplicationResponse(BaseModel):
    data: ApplicationOut


class ApprovalResult(BaseModel):
    application: ApplicationOut
    internship: InternshipOut


class ApprovalResponse(BaseModel):
    data: ApprovalResult


class ApplicationListResponse(BaseModel):
    data: List[ApplicationOut]
    pagination: Pagination


@router.post("", response_model=ApplicationResponse, status_code=201)
async def submit_application(
    body: ApplicationCreate,
    request: Request,
    caller: Caller = Depends(require_role(Role.STUDENT)),
):
    """
    Submit an application; all teachers are notified.

    Raises:
        400: Missing position, statement or contact info
        404: Position not found
        409: DUPLICATE_APPLICATION or POSITION_FULL
    """
    application = await get_application_service().submit(
        caller.user_id,
        body.position_id,
        body.personal_statement,
        body.contact_info,
        meta=request_meta(request),
    )
    return ApplicationResponse(data=ApplicationOut.model_validate(application))


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    status: Optional[ApplicationStatus] = Query(None, description="Filter by status (pending, approved, rejected)"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
):
    result = await get_application_service().list_applications(
        caller.user_id, caller.role, status=status, page=page, limit=limit
    )
    return ApplicationListResponse(
        data=[ApplicationOut.model_validate(application) for application in result["applications"]],
        pagination=Pagination(total=result["total"], page=page, limit=limit),
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: int = Path(..., description="Application id"),
    caller: Caller = Depends(get_current_caller),
):
    application = await get_application_service().get_application(application_id, caller.user_id, caller.role)
    return ApplicationResponse(data=ApplicationOut.model_validate(application))


@router.put("/{application_id}/approve", response_model=ApprovalResponse)
async def approve_application(
    request: Request,
    application_id: int = Path(..., description="Application id"),
    caller: Caller = Depends(require_role(Role.TEACHER)),
):
    """
    Approve a pending application.

    Creates the internship and takes one slot of the position.

    Raises:
        404: Application not found
        409: INVALID_STATUS (not pending)
    """
    application, internship = await get_application_service().approve(
        application_id, caller.user_id, meta=request_meta(request)
    )
    return ApprovalResponse(
        data=ApprovalResult(
            application=ApplicationOut.model_validate(application),
            internship=InternshipOut.model_validate(internship),
        )
    )


@router.put("/{application_id}/reject", response_model=ApplicationResponse)
async def reject_application(
    body: RejectRequest,
    request: Request,
    application_id: int = Path(..., description="Application id"),
    caller: Caller = Depends(require_role(Role.TEACHER)),
):
    """
    Reject a pending application.

    Raises:
        400: Empty rejection reason
        409: INVALID_STATUS (not pending)
    """
    application = await get_application_service().reject(
        application_id, caller.user_id, body.rejection_reason, meta=request_meta(request)
    )
    return ApplicationResponse(data=ApplicationOut.model_validate(application))
