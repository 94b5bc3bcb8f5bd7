"""Flows: store と純粋なスケジューリングコアをつなぐ手続き。"""

from .cards import CardFlow, EmbeddingUnavailableError
from .review import ReviewSessionFlow

__all__ = ["CardFlow", "EmbeddingUnavailableError", "ReviewSessionFlow"]
