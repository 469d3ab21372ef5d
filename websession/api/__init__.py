"""ASGI integration: middleware and FastAPI dependencies."""
