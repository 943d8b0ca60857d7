"""HTTP surface for context assembly (FastAPI)."""
