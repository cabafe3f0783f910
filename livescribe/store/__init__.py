"""Persisted client state."""
