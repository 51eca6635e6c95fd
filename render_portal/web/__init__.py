"""Web-facing helpers shared by the FastAPI app."""
