"""Fines module.

Provides functionality for:
- Fine calculation (flat daily rate, capped at a multiple of the item value)
- Manual fine entry and correction
- Payment and cancellation
"""

from .calculator import FineQuote, compute_fine, fine_cap, quote_fine
from .manager import FineManager
from .models import Fine
from .repository import FineRepository
from .schemas import FineCreate, FineResponse, FineStatus, FineTotals

__all__ = [
    "FineManager",
    "FineRepository",
    "Fine",
    "FineQuote",
    "compute_fine",
    "fine_cap",
    "quote_fine",
    "FineCreate",
    "FineResponse",
    "FineStatus",
    "FineTotals",
]
