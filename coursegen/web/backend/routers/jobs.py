"""Job lifecycle router: create, run, inspect, approve, reject and retry."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from coursegen.errors import (
    CourseGenError,
    NotFoundError,
    PersistenceError,
    StageNotReadyError,
    StageOutOfOrderError,
    ValidationError,
)

from ..dependencies import JobControllerDep, get_credential
from ..models import (
    ApprovalResponse,
    ApprovalResultResponse,
    ApproveStageRequest,
    ArtifactResponse,
    ArtifactsResponse,
    CreateJobRequest,
    CreateJobResponse,
    JobResponse,
    RejectStageRequest,
    RunResponse,
)

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(get_credential)])

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StageNotReadyError: status.HTTP_409_CONFLICT,
    StageOutOfOrderError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_error(error: CourseGenError) -> HTTPException:
    """Translate a pipeline error into the matching HTTP error."""
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@router.post("", response_model=CreateJobResponse, status_code=status.HTTP_201_CREATED)
def create_job(request: CreateJobRequest, controller: JobControllerDep) -> CreateJobResponse:
    """Create a job from a markdown document."""
    try:
        job = controller.create_job(
            request.content,
            style=request.style,
            language=request.language,
            auto_mode=request.auto_mode,
        )
    except CourseGenError as e:
        raise to_http_error(e)
    return CreateJobResponse(job_id=job.id)


@router.get("", response_model=list[JobResponse])
def list_jobs(controller: JobControllerDep) -> list[JobResponse]:
    """List all jobs, newest first."""
    return [JobResponse.from_job(job) for job in controller.list_jobs()]


@router.get("/{job_id}", response_model=JobResponse)
def get_job(job_id: str, controller: JobControllerDep) -> JobResponse:
    """Get job state."""
    try:
        job = controller.get_job(job_id)
    except CourseGenError as e:
        raise to_http_error(e)
    return JobResponse.from_job(job)


@router.post("/{job_id}/run", response_model=RunResponse, status_code=status.HTTP_201_CREATED)
async def run_job(job_id: str, controller: JobControllerDep) -> RunResponse:
    """Start the stage pipeline of a pending job."""
    try:
        handle = await controller.run(job_id)
    except CourseGenError as e:
        raise to_http_error(e)
    return RunResponse(workflow_id=handle.workflow_id, run_id=handle.run_id)


@router.get("/{job_id}/artifacts", response_model=ArtifactsResponse)
async def get_artifacts(
    job_id: str,
    controller: JobControllerDep,
    wait_for_stage: str | None = Query(default=None, alias="waitForStage"),
    timeout_ms: int | None = Query(default=None, alias="timeoutMs"),
) -> ArtifactsResponse:
    """List artifacts, optionally blocking until a stage has produced one."""
    try:
        result = await controller.artifacts(job_id, wait_for_stage or None, timeout_ms)
    except CourseGenError as e:
        raise to_http_error(e)
    return ArtifactsResponse(
        artifacts=[ArtifactResponse.from_artifact(a) for a in result.artifacts],
        timeout=result.timeout,
    )


@router.get("/{job_id}/approvals", response_model=list[ApprovalResponse])
def list_approvals(job_id: str, controller: JobControllerDep) -> list[ApprovalResponse]:
    """Approval records of a job, including AUTO approvals."""
    try:
        approvals = controller.approvals(job_id)
    except CourseGenError as e:
        raise to_http_error(e)
    return [ApprovalResponse.from_approval(a) for a in approvals]


@router.post("/{job_id}/approve", response_model=ApprovalResultResponse)
async def approve_stage(
    job_id: str,
    request: ApproveStageRequest,
    controller: JobControllerDep,
) -> ApprovalResultResponse:
    """Approve the stage awaiting review and start the next one."""
    try:
        job, approval = await controller.approve(job_id, request.stage, request.approved_by)
    except CourseGenError as e:
        raise to_http_error(e)
    return ApprovalResultResponse(
        job=JobResponse.from_job(job),
        approval=ApprovalResponse.from_approval(approval),
    )


@router.post("/{job_id}/reject", response_model=ApprovalResultResponse)
async def reject_stage(
    job_id: str,
    request: RejectStageRequest,
    controller: JobControllerDep,
) -> ApprovalResultResponse:
    """Reject the stage awaiting review and regenerate it."""
    try:
        job, rejection = await controller.reject(job_id, request.stage, request.reason, request.rejected_by)
    except CourseGenError as e:
        raise to_http_error(e)
    return ApprovalResultResponse(
        job=JobResponse.from_job(job),
        approval=ApprovalResponse.from_approval(rejection),
    )


@router.post("/{job_id}/retry", response_model=RunResponse, status_code=status.HTTP_201_CREATED)
async def retry_job(job_id: str, controller: JobControllerDep) -> RunResponse:
    """Re-run the failed stage of a job."""
    try:
        handle = await controller.retry(job_id)
    except CourseGenError as e:
        raise to_http_error(e)
    return RunResponse(workflow_id=handle.workflow_id, run_id=handle.run_id)
