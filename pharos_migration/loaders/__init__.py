"""Data loaders for the Pharos destination."""

from .base import BaseLoader
from .api_loader import PharosAPILoader
from .sql_loader import SQLLoader

__all__ = [
    "BaseLoader",
    "PharosAPILoader",
    "SQLLoader",
]
