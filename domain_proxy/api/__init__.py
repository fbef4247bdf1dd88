"""Platform adapter: FastAPI routes and response schemas."""
