from pydantic import BaseModel, Field
from typing import List, Optional


class QueryRequest(BaseModel):
    text: str = Field(..., min_length=1, description="The query text to search for")
    top_k: int = Field(default=5, ge=1, le=100, description="Number of results to return")


class SearchResult(BaseModel):
    doc_key: str
    name: Optional[str] = None
    chunk_index: int
    content: str
    distance: float


class QueryResponse(BaseModel):
    results: List[SearchResult]
    query: str
    total_results: int


class IndexDocumentRequest(BaseModel):
    key: str = Field(..., min_length=1, description="Stable document key (path or id)")
    text: str = Field(..., description="Full document text")
    name: Optional[str] = Field(default=None, description="Label stored with each embedding")
    force: bool = Field(default=False, description="Reindex even if content is unchanged")


class IndexDocumentResponse(BaseModel):
    status: str
    key: str
    chunks: int
    tokens_used: int


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields are left unchanged"""
    embeddings_endpoint: Optional[str] = None
    embeddings_api_key: Optional[str] = None
    embeddings_model: Optional[str] = None
    use_local_embeddings: Optional[bool] = None


class SettingsResponse(BaseModel):
    embeddings_endpoint: str
    embeddings_api_key: Optional[str] = None
    embeddings_model: Optional[str] = None
    use_local_embeddings: bool
    mode: str
    total_tokens_processed: int
    estimated_cost: float
    missing_fields: List[str] = []


class DatabaseStatus(BaseModel):
    state: str
    extension_active: bool
    extension_version: Optional[str] = None
    embedding_dim: int
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    database: DatabaseStatus
    indexed_documents: Optional[int] = None
    total_chunks: Optional[int] = None
    total_embeddings: Optional[int] = None
