"""Sync state layer.

This package holds the only mutable sync state of the agent: the engine
phase, the retry backoff and the outcome bookkeeping. It is owned by a
single :class:`~geosentinel.engine.SyncEngine` instance; nothing here is
module-level.
"""
