"""
Diagnostic endpoints for the storage backend
"""
from fastapi import APIRouter

from cajapos.dependencies.clientDependencies import client_dependency
from cajapos.modules.files.schemas import DiagnosticResult
from cajapos.modules.files.service import StorageService

storage_router = APIRouter(prefix="/api/storage", tags=["Storage"])


@storage_router.get("/connection", response_model=DiagnosticResult)
async def get_connection_status(client: client_dependency):
    """
    Run a one-row query against productos with a short timeout.
    """
    return await StorageService(client).check_connection()


@storage_router.get("/bucket", response_model=DiagnosticResult)
async def get_bucket_status(client: client_dependency):
    """
    Check that the current session can list the product images folder.
    """
    return await StorageService(client).check_bucket_configuration()
