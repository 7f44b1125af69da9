"""Document routes: index and delete notes."""
from fastapi import APIRouter, HTTPException, Request

from domain_models import Document
from errors import SemanticSearchError
from models import IndexDocumentRequest, IndexDocumentResponse
from routes.deps import get_app_state, to_http_exception

router = APIRouter()


@router.post("/documents", response_model=IndexDocumentResponse)
async def index_document(request_data: IndexDocumentRequest, request: Request):
    """Chunk, embed and store a document, replacing any previous version"""
    app_state = get_app_state(request)
    doc = Document(key=request_data.key, text=request_data.text, name=request_data.name)
    try:
        result = await app_state.index_document(doc, force=request_data.force)
    except SemanticSearchError as e:
        raise to_http_exception(e)

    return IndexDocumentResponse(
        status="skipped" if result.was_skipped else "indexed",
        key=doc.key,
        chunks=result.chunks_count,
        tokens_used=result.tokens_used,
    )


@router.delete("/documents/{doc_key:path}")
async def delete_document(doc_key: str, request: Request):
    """Delete a document and all its chunks and embeddings"""
    app_state = get_app_state(request)
    try:
        deleted = await app_state.delete_document(doc_key)
    except SemanticSearchError as e:
        raise to_http_exception(e)

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document not found: {doc_key}")
    return {"status": "success", "key": doc_key}
