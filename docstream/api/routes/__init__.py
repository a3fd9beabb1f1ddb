from fastapi import APIRouter

from docstream.api.routes import connections, documents, health, providers

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
api_router.include_router(connections.router, prefix="/connection", tags=["connection"])
api_router.include_router(providers.router, prefix="/providers", tags=["providers"])
