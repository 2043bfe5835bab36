import logging

from fastapi import APIRouter, Depends

from principia.api.deps import get_jobs_repo
from principia.api.models import JobStatusResponse
from principia.services import status as status_service
from principia.storage.jobs_repo import JobsRepository

router = APIRouter()
logger = logging.getLogger("principia.api.routes.jobs")


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  jobs_repo: JobsRepository = Depends(get_jobs_repo),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the state and progress of a generation job; poll until the state is terminal."""
  view = await status_service.get_job_status(job_id, jobs_repo=jobs_repo)
  return JobStatusResponse(job_id=view.job_id, state=view.state, progress=view.progress, result=view.result, error=view.error)
