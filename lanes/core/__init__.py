"""Persistent store and domain layer."""
