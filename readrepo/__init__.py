"""Read repositories for entities: in-memory, caching, version-checking and MongoDB backends."""

__version__ = "0.1.0"

__all__ = ["acceptance", "cache", "core", "memory", "mongodb", "version"]