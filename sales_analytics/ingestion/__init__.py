"""
Data Ingestion Module
"""
from .csv_loader import DatasetLoader, DatasetSnapshot

__all__ = [
    "DatasetLoader",
    "DatasetSnapshot",
]
