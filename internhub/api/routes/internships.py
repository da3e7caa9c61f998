"""
Internship API Endpoints

GET  /api/v1/internships                          - Internships the caller takes part in
POST /api/v1/internships/update-expired           - Teacher triggers the expiry sweep
GET  /api/v1/internships/{id}                     - Detail with progress (lazy expiry)
GET  /api/v1/internships/{id}/progress            - Progress only
POST /api/v1/internships/{id}/logs                - Intern submits a progress log
GET  /api/v1/internships/{id}/logs                - Progress logs
POST /api/v1/internships/{id}/files               - Intern uploads an attachment
GET  /api/v1/internships/{id}/files               - Attachments
POST /api/v1/internships/{id}/evaluate/teacher    - Teacher evaluation
POST /api/v1/internships/{id}/evaluate/enterprise - Enterprise evaluation
GET  /api/v1/internships/{id}/evaluation          - Evaluation result (intern only)
"""
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Path, Query, Request, UploadFile
from pydantic import BaseModel

from internhub.api.auth import Caller, get_current_caller, request_meta, require_role
from internhub.api.schemas import (
    EvaluationOut,
    InternshipDetail,
    InternshipFileOut,
    InternshipLogOut,
    InternshipOut,
    ProgressOut,
)
from internhub.models.internship import InternshipStatus
from internhub.models.user import Role
from internhub.services.internship_records import get_records_service, read_upload
from internhub.services.internship_service import get_internship_service

router = APIRouter(prefix="/internships", tags=["internships"])


class LogCreate(BaseModel):
    """Request body for POST /internships/{id}/logs"""
    content: Optional[str] = None
    log_date: Optional[date] = None


class EvaluationRequest(BaseModel):
    """Request body for the evaluation endpoints; score is range-checked by the service"""
    score: Optional[float] = None
    comment: Optional[str] = None


class InternshipListResponse(BaseModel):
    data: List[InternshipOut]
    total: int


class InternshipDetailResponse(BaseModel):
    data: InternshipDetail


class ProgressResponse(BaseModel):
    data: ProgressOut


class LogResponse(BaseModel):
    data: InternshipLogOut


class LogListResponse(BaseModel):
    data: List[InternshipLogOut]
    total: int


class FileResponse(BaseModel):
    data: InternshipFileOut


class FileListResponse(BaseModel):
    data: List[InternshipFileOut]
    total: int


class EvaluationResponse(BaseModel):
    data: EvaluationOut


class SweepResponse(BaseModel):
    """Response for POST /internships/update-expired"""
    data: Dict[str, Any]


def _evaluation(internship) -> EvaluationOut:
    return EvaluationOut(
        teacher_score=internship.teacher_score,
        teacher_comment=internship.teacher_comment,
        enterprise_score=internship.enterprise_score,
        enterprise_comment=internship.enterprise_comment,
        final_score=internship.final_score,
        status=internship.status,
    )


@router.get("", response_model=InternshipListResponse)
async def list_internships(
    status: Optional[InternshipStatus] = Query(None, description="Filter by status"),
    caller: Caller = Depends(get_current_caller),
):
    result = await get_internship_service().list_internships(caller.user_id, caller.role, status=status)
    return InternshipListResponse(
        data=[InternshipOut.model_validate(internship) for internship in result["internships"]],
        total=result["total"],
    )


@router.post("/update-expired", response_model=SweepResponse)
async def update_expired_internships(
    as_of: Optional[date] = Query(None, description="Reference date (default today)"),
    caller: Caller = Depends(require_role(Role.TEACHER)),
):
    """
    Move every ongoing internship past its end date to pending_evaluation.

    Returns:
        updated count and the affected internship ids
    """
    summary = await get_internship_service().sweep_expired(as_of=as_of)
    return SweepResponse(data=summary)


@router.get("/{internship_id}", response_model=InternshipDetailResponse)
async def get_internship(
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(get_current_caller),
):
    """
    Internship detail for one of its parties, with progress.

    An ongoing internship past its end date is moved to pending_evaluation first.
    """
    result = await get_internship_service().get_internship(internship_id, caller.user_id, caller.role)
    detail = InternshipDetail.model_validate(result["internship"])
    detail.progress = ProgressOut(**result["progress"])
    return InternshipDetailResponse(data=detail)


@router.get("/{internship_id}/progress", response_model=ProgressResponse)
async def get_progress(
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(get_current_caller),
):
    progress = await get_internship_service().get_progress(internship_id, caller.user_id, caller.role)
    return ProgressResponse(data=ProgressOut(**progress))


@router.post("/{internship_id}/logs", response_model=LogResponse, status_code=201)
async def submit_log(
    body: LogCreate,
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(require_role(Role.STUDENT)),
):
    log = await get_records_service().submit_log(
        internship_id, caller.user_id, caller.role, body.content, body.log_date
    )
    return LogResponse(data=InternshipLogOut.model_validate(log))


@router.get("/{internship_id}/logs", response_model=LogListResponse)
async def list_logs(
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(get_current_caller),
):
    result = await get_records_service().list_logs(internship_id, caller.user_id, caller.role)
    return LogListResponse(
        data=[InternshipLogOut.model_validate(log) for log in result["logs"]],
        total=result["total"],
    )


@router.post("/{internship_id}/files", response_model=FileResponse, status_code=201)
async def upload_file(
    internship_id: int = Path(..., description="Internship id"),
    file: UploadFile = File(..., description="PDF, Word document or JPG/PNG image, at most 10MB"),
    caller: Caller = Depends(require_role(Role.STUDENT)),
):
    data = await read_upload(file)
    record = await get_records_service().upload_file(
        internship_id, caller.user_id, caller.role, file.filename, file.content_type, data
    )
    return FileResponse(data=InternshipFileOut.model_validate(record))


@router.get("/{internship_id}/files", response_model=FileListResponse)
async def list_files(
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(get_current_caller),
):
    result = await get_records_service().list_files(internship_id, caller.user_id, caller.role)
    return FileListResponse(
        data=[InternshipFileOut.model_validate(record) for record in result["files"]],
        total=result["total"],
    )


@router.post("/{internship_id}/evaluate/teacher", response_model=EvaluationResponse)
async def submit_teacher_evaluation(
    body: EvaluationRequest,
    request: Request,
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(require_role(Role.TEACHER)),
):
    """
    Assigned teacher scores the internship.

    Raises:
        400: Score missing or outside 0-100
        403: Caller is not the assigned teacher
        409: Internship not ended, or teacher evaluation already submitted
    """
    internship = await get_internship_service().submit_teacher_evaluation(
        internship_id, caller.user_id, body.score, body.comment, meta=request_meta(request)
    )
    return EvaluationResponse(data=_evaluation(internship))


@router.post("/{internship_id}/evaluate/enterprise", response_model=EvaluationResponse)
async def submit_enterprise_evaluation(
    body: EvaluationRequest,
    request: Request,
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(require_role(Role.ENTERPRISE)),
):
    """
    Host enterprise scores the internship.

    Raises:
        400: Score missing or outside 0-100
        403: Caller is not the host enterprise
        409: Internship not ended, or enterprise evaluation already submitted
    """
    internship = await get_internship_service().submit_enterprise_evaluation(
        internship_id, caller.user_id, body.score, body.comment, meta=request_meta(request)
    )
    return EvaluationResponse(data=_evaluation(internship))


@router.get("/{internship_id}/evaluation", response_model=EvaluationResponse)
async def get_evaluation(
    internship_id: int = Path(..., description="Internship id"),
    caller: Caller = Depends(get_current_caller),
):
    evaluation = await get_internship_service().get_evaluation(internship_id, caller.user_id, caller.role)
    return EvaluationResponse(data=EvaluationOut(**evaluation))
