"""Estimate endpoint - page counts without generation."""

from fastapi import APIRouter

from services import estimate_document
from services.models import EstimateRequest, EstimateResponse

router = APIRouter()


@router.post("/estimate", response_model=EstimateResponse)
async def estimate(body: EstimateRequest):
    """Estimate resume and cover letter page counts."""
    return estimate_document(body.resume_data)
