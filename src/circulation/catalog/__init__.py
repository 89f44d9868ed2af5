"""Catalog module.

Provides functionality for:
- Registering books with their replacement value
- Registering physical copies
- Copy status tracking (available, loaned, damaged, lost)
"""

from .manager import CatalogManager
from .models import Book, Copy
from .schemas import BookCreate, BookResponse, CopyResponse, CopyStatus, InventoryLine

__all__ = [
    "CatalogManager",
    "Book",
    "Copy",
    "BookCreate",
    "BookResponse",
    "CopyResponse",
    "CopyStatus",
    "InventoryLine",
]
