"""Query route module."""
from fastapi import APIRouter, HTTPException, Request

from errors import SemanticSearchError
from models import QueryRequest, QueryResponse, SearchResult
from routes.deps import get_app_state, to_http_exception

router = APIRouter()


@router.post("/query", response_model=QueryResponse)
async def query(request_data: QueryRequest, request: Request):
    """
    Semantic search over indexed chunks

    Args:
        request_data: Query parameters
        request: FastAPI request for accessing app state

    Returns:
        QueryResponse with hits ordered by ascending cosine distance
    """
    app_state = get_app_state(request)
    try:
        hits = await app_state.search(request_data.text, request_data.top_k)
    except SemanticSearchError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    results = [SearchResult(**{k: v for k, v in hit.to_dict().items() if k != 'embedding_id'})
               for hit in hits]
    return QueryResponse(results=results, query=request_data.text, total_results=len(results))
