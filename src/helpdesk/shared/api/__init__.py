"""Shared HTTP plumbing (middleware, exception handlers)."""
