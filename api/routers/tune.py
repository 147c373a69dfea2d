"""Tune endpoint - whole-document tuning for a job."""

from fastapi import APIRouter, Depends

from api.dependencies import get_tune_service
from services import TuneService
from services.models import TuneRequest, TuneResponse

router = APIRouter()


@router.post("/tune-resume", response_model=TuneResponse)
def tune_resume(
    body: TuneRequest,
    svc: TuneService = Depends(get_tune_service),
):
    """Tune resume and cover letter within the page limits."""
    return svc.tune(body)
