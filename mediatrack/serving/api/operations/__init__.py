"""
Operation sets shared by every media lot
"""
from .core import operations as core_operations
from .media import operations as media_operations
from .users import operations as users_operations

__all__ = [
    "core_operations",
    "media_operations",
    "users_operations",
]
