"""Ingestion layer.

This package contains the fetch orchestration that pulls collections from
the backend and hands normalized records to the entity store.
"""

__all__: list[str] = []
