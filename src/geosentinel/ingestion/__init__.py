"""Ingestion layer.

This package turns sampler output into outbox rows: the sampler adapters,
the tick handler with its last-known-position fallback, and the ingestion
entrypoint with its opportunistic single-record upload.
"""

__all__: list[str] = []
