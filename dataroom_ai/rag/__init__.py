"""Financial question answering over indexed spreadsheets."""

from dataroom_ai.rag.chain import RAGChain
from dataroom_ai.rag.models import RAGResponse, Source, StreamEvent

__all__ = ["RAGChain", "RAGResponse", "Source", "StreamEvent"]
