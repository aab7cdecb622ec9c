"""
infsched.store - Object store backends.
"""

from .base import ResourceStore
from .memory import InMemoryStore
from .kubernetes import KubernetesStore

__all__ = [
    "ResourceStore",
    "InMemoryStore",
    "KubernetesStore",
]
