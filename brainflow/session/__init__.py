"""Game sessions: plan derivation, the session lifecycle, and scoring.

Kept free of FastAPI and Redis concerns so it can be reused by API routes,
flows, and tests.
"""
