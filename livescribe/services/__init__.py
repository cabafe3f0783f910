"""Segment processing, inference clients and session control."""
