"""
Pool Package

Provides the bounded pool of warm browsers used for rendering.
"""

from .models import PooledResource, ResourceState
from .browser_pool import BrowserPool

__all__ = [
    "BrowserPool",
    "PooledResource",
    "ResourceState",
]
