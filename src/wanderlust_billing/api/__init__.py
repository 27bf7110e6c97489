"""HTTP surface: FastAPI app, dependencies and routes."""
