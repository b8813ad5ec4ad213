"""Persistence helpers: engine/session lifecycle and column introspection."""
