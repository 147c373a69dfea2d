"""Selection rewrite endpoint."""

from fastapi import APIRouter, Depends

from api.dependencies import get_rewrite_service
from services import RewriteService
from services.models import SelectionRewriteRequest, SelectionRewriteResponse

router = APIRouter()


@router.post("/selection-rewrite", response_model=SelectionRewriteResponse)
def selection_rewrite(
    body: SelectionRewriteRequest,
    svc: RewriteService = Depends(get_rewrite_service),
):
    return svc.rewrite_selection(body)
