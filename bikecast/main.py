"""FastAPI application setup for bikecast."""

from fastapi import FastAPI

from .api import router as api_router

app = FastAPI(title="Bikecast")

# API routes
app.include_router(api_router, prefix="/v1")
