"""HTTP functions of the hub, served by one FastAPI app (functions.app)."""
