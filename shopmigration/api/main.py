"""FastAPI application entry point."""

from fastapi import FastAPI

from .routes import mappings, steps

app = FastAPI(
    title="Shop Migration API",
    description="Runs resumable shop migration steps one invocation at a time",
    version="1.0.0",
)

# Include routers
app.include_router(steps.router, prefix="/api/steps", tags=["steps"])
app.include_router(mappings.router, prefix="/api/mappings", tags=["mappings"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
