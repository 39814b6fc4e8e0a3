"""Data types passed between RAG pipeline stages."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

type SearchStrategy = Literal["single", "multi"]
type ProcessingStrategy = Literal["simple", "moderate", "complex"]
type QueryType = Literal["exact_lookup", "general"]
type AggregationType = Literal["sum", "average", "count", "max", "min", "group_by"]
type GroupByField = Literal["industry", "geography", "customer", "month"]
type StreamEventType = Literal["status", "chunk", "done", "error"]


@dataclass(frozen=True)
class CategoryInfo:
    primary: str
    fallback: tuple[str, ...] = ()
    search_strategy: SearchStrategy = "single"
    requires_aggregation: bool = False


@dataclass(frozen=True)
class QueryClassification:
    category: str
    complexity: int
    can_answer_from_metadata: bool
    processing_strategy: ProcessingStrategy


@dataclass(frozen=True)
class AggregationNeeds:
    needs_aggregation: bool
    aggregation_type: AggregationType | None
    group_by_field: GroupByField | None


@dataclass(frozen=True)
class KeywordExtraction:
    keywords: list[str]
    type: QueryType


@dataclass
class Source:
    content: str
    similarity: float
    file_id: str | None = None
    source_file: str | None = None
    category: str | None = None


@dataclass
class RAGResponse:
    answer: str
    sources: list[Source]
    category: str
    processing_time_ms: int
    sub_queries: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StreamEvent:
    type: StreamEventType
    data: str | RAGResponse

    def to_dict(self) -> dict[str, Any]:
        data = self.data.to_dict() if isinstance(self.data, RAGResponse) else self.data
        return {"type": self.type, "data": data}
