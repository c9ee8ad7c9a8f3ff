"""FastAPI web control surface."""
