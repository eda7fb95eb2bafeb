"""FastAPI routes and request/response schemas."""
