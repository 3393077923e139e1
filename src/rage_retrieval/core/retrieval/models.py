"""Pydantic models for retrieval queries, results, and health status."""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_NUM_RESULTS = 1
MAX_NUM_RESULTS = 20
DEFAULT_NUM_RESULTS = 5


class RetrievalQuery(BaseModel):
    """A question to run against the retrieval pipeline.

    Lives only for the duration of one ``retrieve()`` call.
    """

    model_config = ConfigDict(frozen=True)

    question: str = Field(..., min_length=1, description="Natural-language question")
    num_results: int = Field(
        default=DEFAULT_NUM_RESULTS,
        ge=MIN_NUM_RESULTS,
        le=MAX_NUM_RESULTS,
        description="Maximum number of documents to return",
    )
    rerank: bool = Field(default=True, description="Apply the secondary relevance pass")
    metadata_filters: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend metadata filters, sent verbatim",
    )

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value

    def to_request_body(self) -> dict[str, Any]:
        """Render the JSON body expected by the retrieval endpoint."""
        return {
            "question": self.question,
            "numResults": self.num_results,
            "rerank": self.rerank,
            "metadata-filters": dict(self.metadata_filters),
        }


class RetrievedDocument(BaseModel):
    """One ranked document chunk."""

    id: str
    score: float = Field(..., ge=0.0, le=1.0)
    text: str = ""
    source_metadata: dict[str, Any] = Field(default_factory=dict)


class RetrievalResult(BaseModel):
    """Ranked documents returned for one query.

    ``results`` is always ordered by descending score; ``total`` is the
    backend-reported match count, which may exceed ``count``.
    """

    results: list[RetrievedDocument] = Field(default_factory=list)
    count: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    query: Optional[str] = Field(default=None, description="Question echoed by the backend")
    diagnostics: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend ranking diagnostics (average_relevancy, ndcg)",
    )

    @field_validator("results")
    @classmethod
    def _order_by_score(cls, value: list[RetrievedDocument]) -> list[RetrievedDocument]:
        return sorted(value, key=lambda doc: doc.score, reverse=True)


class HealthStatus(BaseModel):
    """Outcome of a health probe against the retrieval endpoint."""

    status: Literal["healthy", "unhealthy"]
    endpoint: str = Field(..., description="Sanitized endpoint URL")
    duration_ms: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    correlation_id: str = ""
    checked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
