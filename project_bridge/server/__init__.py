"""FastAPI server exposing the bridge operations (see server.app)."""
