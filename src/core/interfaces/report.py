"""
Report collaborator interface.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.models.backtest import BacktestResult


class IReportWriter(ABC):
    """Abstract interface for persisting a completed backtest result."""

    @abstractmethod
    async def save(self, result: "BacktestResult") -> str:
        """Store the result and return its storage location."""
        pass
