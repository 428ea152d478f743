"""Document endpoints: render, list, look up and remove posts."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from postkit.api.dependencies import get_doc_store, get_pipeline, persist
from postkit.api.schemas import (
    DocumentResponse,
    DocumentSummaryResponse,
    ErrorResponse,
    FieldWarning,
    RemoveResponse,
    RenderRequest,
    RenderResponse,
)
from postkit.domain.document import Document, DocumentSummary
from postkit.errors import DuplicateIdentifier, PostkitError
from postkit.pipeline.pipeline import RenderPipeline
from postkit.storage.docstore import DocStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def to_summary_response(summary: DocumentSummary) -> DocumentSummaryResponse:
    return DocumentSummaryResponse(
        identifier=summary.identifier,
        title=summary.title,
        published_at=summary.published_at,
        categories=list(summary.categories),
    )


def to_document_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        identifier=document.identifier,
        title=document.title,
        published_at=document.published_at,
        categories=list(document.categories),
        slug=document.slug,
        layout=document.layout,
        source=document.source,
        rendered_body=document.rendered_body,
        warnings=[
            FieldWarning(line=warning.line, text=warning.text, reason=warning.reason)
            for warning in document.warnings
        ],
    )


@router.post(
    "",
    response_model=RenderResponse,
    status_code=201,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def render_document(
    request: RenderRequest,
    pipeline: RenderPipeline = Depends(get_pipeline),
    store: DocStore = Depends(get_doc_store),
) -> RenderResponse:
    """Render a raw post and add it to the corpus.

    Args:
        request: Raw source and optional source name
        pipeline: Render pipeline dependency
        store: Document store dependency

    Returns:
        Commit status and the rendered document

    Raises:
        HTTPException: 409 if another source owns the identifier,
            422 if the post cannot be rendered
    """
    try:
        document = pipeline.prepare(request.content, request.source)
        status = pipeline.commit(document)
    except DuplicateIdentifier as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except PostkitError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if status != "unchanged":
        persist(pipeline, store)

    return RenderResponse(status=status, document=to_document_response(document))


@router.get("", response_model=List[DocumentSummaryResponse])
def list_documents(
    category: Optional[str] = Query(None, description="Only posts in this category"),
    since: Optional[datetime] = Query(None, description="Published on or after"),
    until: Optional[datetime] = Query(None, description="Published on or before"),
    pipeline: RenderPipeline = Depends(get_pipeline),
) -> List[DocumentSummaryResponse]:
    """List posts, most recent first."""
    documents = pipeline.by_category(category) if category else pipeline.all()
    if since or until:
        in_range = {document.identifier for document in pipeline.between(since, until)}
        documents = [document for document in documents if document.identifier in in_range]
    return [to_summary_response(document.summary()) for document in documents]


@router.get("/lookup", response_model=DocumentResponse, responses={404: {"model": ErrorResponse}})
def get_document(
    identifier: str = Query(..., min_length=1, description="Permalink identifier"),
    pipeline: RenderPipeline = Depends(get_pipeline),
) -> DocumentResponse:
    """Fetch one rendered post by identifier."""
    document = pipeline.get(identifier)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {identifier}")
    return to_document_response(document)


@router.delete("", response_model=RemoveResponse, responses={404: {"model": ErrorResponse}})
def remove_document(
    identifier: str = Query(..., min_length=1, description="Permalink identifier"),
    pipeline: RenderPipeline = Depends(get_pipeline),
    store: DocStore = Depends(get_doc_store),
) -> RemoveResponse:
    """Remove a post from every index."""
    if not pipeline.remove(identifier):
        raise HTTPException(status_code=404, detail=f"Document not found: {identifier}")

    persist(pipeline, store)
    logger.info("Removed %s", identifier)
    return RemoveResponse(identifier=identifier, removed=True)
