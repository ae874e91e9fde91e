"""FastAPI admin application."""
