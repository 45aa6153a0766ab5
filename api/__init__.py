"""HTTP surface: FastAPI app, request models, environment settings."""
