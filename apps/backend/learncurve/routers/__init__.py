"""Router package exports."""

from . import cards, config, dashboard, health, review

__all__ = [
    "cards",
    "config",
    "dashboard",
    "health",
    "review",
]
