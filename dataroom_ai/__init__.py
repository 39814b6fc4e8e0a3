"""Dataroom AI: tenant-gated RAG query service for financial data rooms."""

__version__ = "0.1.0"
