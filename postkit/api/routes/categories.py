"""Category endpoints."""

from typing import List

from fastapi import APIRouter, Depends

from postkit.api.dependencies import get_pipeline
from postkit.api.routes.documents import to_summary_response
from postkit.api.schemas import CategoryResponse, DocumentSummaryResponse
from postkit.pipeline.pipeline import RenderPipeline

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=List[CategoryResponse])
def list_categories(pipeline: RenderPipeline = Depends(get_pipeline)) -> List[CategoryResponse]:
    """Every category with its document count, sorted by label."""
    return [CategoryResponse(label=label, count=count) for label, count in pipeline.corpus.categories()]


@router.get("/{label}", response_model=List[DocumentSummaryResponse])
def list_category(label: str, pipeline: RenderPipeline = Depends(get_pipeline)) -> List[DocumentSummaryResponse]:
    """Posts in one category, most recent first. Unknown categories are empty."""
    return [to_summary_response(summary) for summary in pipeline.list_by_category(label)]
