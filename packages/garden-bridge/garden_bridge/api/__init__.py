"""API layer — loopback HTTP transport built on FastAPI."""
