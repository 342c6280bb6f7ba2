"""FastAPI application for the Coexpression Data API."""
