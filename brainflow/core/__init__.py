"""Shared primitives used by both flows and sessions (analytics events)."""
