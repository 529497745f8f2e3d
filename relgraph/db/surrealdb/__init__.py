"""SurrealDB backend for relgraph"""

from .connection import SurrealConnection

__all__ = ["SurrealConnection"]
