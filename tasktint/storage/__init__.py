"""Persisted color maps: key layout, store implementations and the write repository."""
