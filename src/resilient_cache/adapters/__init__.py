"""Adapters exposing the cache to UI code as observable state."""

from .cached_resource import CachedResource, ResourceCollection, resource_factory

__all__ = [
    "CachedResource",
    "ResourceCollection",
    "resource_factory",
]
