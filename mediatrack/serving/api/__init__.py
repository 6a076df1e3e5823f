"""
API Module
"""
from .registry import OperationCollisionError, OperationRegistry, OperationSet

__all__ = [
    "OperationCollisionError",
    "OperationRegistry",
    "OperationSet",
]
