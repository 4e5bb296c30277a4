from .base import Cursor, Page, Storage

__all__ = ["Cursor", "Page", "Storage"]
