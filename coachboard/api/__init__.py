"""HTTP API layer: FastAPI dependencies and routers."""
