"""Persistence: ORM models, engine/session management and repositories."""
