"""Requirements endpoint - weighted requirement extraction."""

from fastapi import APIRouter, Depends

from api.dependencies import get_rewrite_service
from services import RewriteService
from services.models import ExtractRequest, ExtractResponse

router = APIRouter()


@router.post("/requirements/extract", response_model=ExtractResponse)
def extract_requirements(
    body: ExtractRequest,
    svc: RewriteService = Depends(get_rewrite_service),
):
    """Extract ranked requirements from a job description."""
    return ExtractResponse(requirements=svc.extract_requirements(body.job_description))
