"""Read-only HTTP endpoints."""
