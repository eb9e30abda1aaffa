"""Application wiring."""

from .application import RAGApplication, RAGSystem

__all__ = ["RAGApplication", "RAGSystem"]
