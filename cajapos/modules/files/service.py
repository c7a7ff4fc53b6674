"""
Servicio de subida de imágenes de productos al storage.

Incluye las rutinas de diagnóstico usadas cuando las subidas fallan
desde dispositivos móviles.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, Optional, Tuple

from cajapos.common.results import UploadResult
from cajapos.core.config import settings
from cajapos.database.client import GatewayError, SupabaseClient
from cajapos.modules.files.images import create_optimized_file, get_network_info
from cajapos.modules.files.schemas import DiagnosticResult, FileData, FileInfo, StorageDebugInfo, now_ms

logger = logging.getLogger(__name__)

TEST_FILE_CONTENT = b"Test file content for debugging"


class StorageError(Exception):
    pass


def unique_file_name(file: FileData, prefix: str = "") -> str:
    """<ms>_<aleatorio>.<ext>"""
    return f"{prefix}{now_ms()}_{uuid.uuid4().hex[:11]}.{file.extension}"


def _timeout_message(seconds: float) -> str:
    return f"Timeout después de {seconds:g} segundos"


class StorageService:
    """
    Servicio de storage
    """

    def __init__(self, client: SupabaseClient):
        self.client = client

    async def _verify_auth(self, timeout: Optional[float] = None) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """
        Verificar la sesión antes de subir.

        Returns:
            (user, error). Si la verificación excede el timeout se devuelve
            (None, None) y la subida continúa.
        """
        timeout = timeout or settings.AUTH_CHECK_TIMEOUT
        try:
            user = await asyncio.wait_for(self.client.auth.get_user(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Auth check timeout, continuing with upload...")
            return None, None
        except GatewayError as e:
            return None, e.message or "Usuario no autenticado"

        if not user:
            return None, "Usuario no autenticado"
        return user, None

    async def upload_to_storage(self, file: Optional[FileData], bucket: Optional[str] = None,
                                folder: Optional[str] = None, skip_auth_check: bool = False) -> UploadResult:
        """
        Subir un archivo y devolver su URL pública.

        Nunca lanza excepciones; los errores se reportan en UploadResult.error.
        """
        bucket = bucket or settings.STORAGE_BUCKET
        folder = folder or settings.STORAGE_FOLDER
        upload_timeout = settings.UPLOAD_TIMEOUT

        try:
            if not skip_auth_check:
                _, auth_error = await self._verify_auth()
                if auth_error:
                    return UploadResult(success=False, error=f"Error de autenticación: {auth_error}")

            if file is None or file.size == 0:
                return UploadResult(success=False, error="Archivo inválido o vacío")

            file_path = f"{folder}/{unique_file_name(file)}"
            logger.info(f"Uploading {file.name} ({file.size} bytes) to {bucket}/{file_path}")

            storage = self.client.storage.from_(bucket)
            try:
                upload = await asyncio.wait_for(
                    storage.upload(
                        file_path,
                        file.content,
                        content_type=file.content_type,
                        cache_control=settings.STORAGE_CACHE_CONTROL,
                        upsert=False,
                    ),
                    upload_timeout,
                )
            except GatewayError as e:
                logger.error(f"Upload error: {e.message}")
                return UploadResult(success=False, error=f"Error de subida: {e.message}")

            public_url = storage.get_public_url(upload["path"])
            return UploadResult(success=True, url=public_url, path=upload["path"])

        except asyncio.TimeoutError:
            logger.error(f"Upload timeout after {upload_timeout}s")
            return UploadResult(success=False, error=f"Error general: {_timeout_message(upload_timeout)}")
        except Exception as e:
            logger.error(f"General upload error: {str(e)}")
            return UploadResult(success=False, error=f"Error general: {str(e) or 'Error desconocido'}")

    async def upload_product_image(self, file: FileData, user_agent: Optional[str] = None) -> str:
        """
        Subir imagen de producto (optimizada en Android).

        Raises:
            StorageError: si la subida falla
        """
        optimized = create_optimized_file(file, user_agent)
        result = await self.upload_to_storage(optimized)
        if not result.success or not result.url:
            raise StorageError(result.error or "Error desconocido al subir imagen")
        return result.url

    async def upload_product_image_direct(self, file: FileData) -> str:
        """Subida sin verificación de sesión ni procesamiento"""
        if file.size == 0:
            raise StorageError("Archivo inválido o vacío")

        file_path = f"{settings.STORAGE_FOLDER}/{unique_file_name(file)}"
        storage = self.client.storage.from_(settings.STORAGE_BUCKET)
        try:
            upload = await storage.upload(
                file_path,
                file.content,
                content_type=file.content_type,
                cache_control=settings.STORAGE_CACHE_CONTROL,
                upsert=False,
            )
        except GatewayError as e:
            raise StorageError(f"Error de subida: {e.message}") from e

        return storage.get_public_url(upload["path"])

    async def _remove_quietly(self, bucket: str, path: Optional[str]) -> None:
        if not path:
            return
        try:
            await self.client.storage.from_(bucket).remove([path])
        except GatewayError as e:
            logger.warning(f"Could not remove test file {path}: {e.message}")

    async def check_upload(self) -> UploadResult:
        """Subir y borrar un archivo de texto para validar permisos"""
        test_file = FileData(name="test.txt", content=TEST_FILE_CONTENT, content_type="text/plain")
        result = await self.upload_to_storage(test_file, folder="test", skip_auth_check=True)
        if result.success:
            await self._remove_quietly(settings.STORAGE_BUCKET, result.path)
        return result

    async def check_image_upload(self, file: Optional[FileData]) -> UploadResult:
        """Subir y borrar una imagen real para validar el flujo completo"""
        if file is None or file.size == 0:
            return UploadResult(success=False, error="Archivo de imagen inválido o vacío")
        if not file.content_type.startswith("image/"):
            return UploadResult(success=False, error=f"Tipo de archivo inválido: {file.content_type}")

        result = await self.upload_to_storage(file, folder="test-images", skip_auth_check=True)
        if result.success:
            await self._remove_quietly(settings.STORAGE_BUCKET, result.path)
        return result

    async def check_bucket_configuration(self) -> DiagnosticResult:
        bucket = settings.STORAGE_BUCKET
        try:
            user, auth_error = await self._verify_auth()
            if auth_error:
                return DiagnosticResult(success=False, error=f"Error de autenticación: {auth_error}")

            files = await self.client.storage.from_(bucket).list(settings.STORAGE_FOLDER, limit=1)
            return DiagnosticResult(
                success=True,
                info={
                    "bucket": bucket,
                    "user": user.get("id") if user else None,
                    "files": len(files),
                    "can_read": True,
                },
            )
        except GatewayError as e:
            return DiagnosticResult(success=False, error=f"Error al acceder al bucket: {e.message}")
        except Exception as e:
            return DiagnosticResult(success=False, error=f"Error general: {str(e)}")

    async def check_connection(self) -> DiagnosticResult:
        timeout = settings.CONNECTION_TEST_TIMEOUT
        try:
            response = await asyncio.wait_for(
                self.client.table("productos").select("id").limit(1).execute(),
                timeout,
            )
            return DiagnosticResult(success=True, info={"rows": len(response.data or [])})
        except asyncio.TimeoutError:
            return DiagnosticResult(success=False, error=f"Error de conexión: {_timeout_message(timeout)}")
        except GatewayError as e:
            return DiagnosticResult(
                success=False,
                error=f"Error de conexión: {e.message}",
                info={"code": e.code, "details": e.details},
            )
        except Exception as e:
            return DiagnosticResult(success=False, error=f"Error general: {str(e)}")

    async def debug_storage_upload(self, file: FileData, user_agent: Optional[str] = None) -> StorageDebugInfo:
        """
        Subida instrumentada paso a paso.

        1. Verificar usuario
        2. Verificar que el bucket existe
        3. Subir con timeout reducido
        4. Obtener URL pública
        5. Borrar el archivo de prueba
        """
        bucket = settings.STORAGE_BUCKET
        timeout = settings.DEBUG_UPLOAD_TIMEOUT
        debug_info = StorageDebugInfo(
            file_info=FileInfo.from_file(file),
            upload_result=UploadResult(success=False),
            network_info=get_network_info(user_agent),
        )

        try:
            # 1. Usuario
            try:
                user = await self.client.auth.get_user()
            except GatewayError as e:
                debug_info.upload_result.error = f"Error de autenticación: {e.message}"
                return debug_info
            if not user:
                debug_info.upload_result.error = "Error de autenticación: Usuario no autenticado"
                return debug_info

            # 2. Bucket
            try:
                buckets = await self.client.storage.list_buckets()
            except GatewayError as e:
                debug_info.upload_result.error = f"Error al verificar bucket: {e.message}"
                return debug_info
            if not any(b.get("name") == bucket for b in buckets):
                debug_info.upload_result.error = f'Bucket "{bucket}" no encontrado'
                return debug_info

            # 3. Subida
            file_path = f"{settings.STORAGE_FOLDER}/{unique_file_name(file, prefix='debug_')}"
            storage = self.client.storage.from_(bucket)
            try:
                upload = await asyncio.wait_for(
                    storage.upload(
                        file_path,
                        file.content,
                        content_type=file.content_type,
                        cache_control=settings.STORAGE_CACHE_CONTROL,
                        upsert=False,
                    ),
                    timeout,
                )
            except asyncio.TimeoutError:
                debug_info.upload_result.error = _timeout_message(timeout)
                return debug_info
            except GatewayError as e:
                debug_info.upload_result.error = f"Error de subida: {e.message}"
                return debug_info

            # 4. URL pública
            debug_info.upload_result = UploadResult(
                success=True,
                url=storage.get_public_url(upload["path"]),
                path=upload["path"],
            )

            # 5. Limpieza
            await self._remove_quietly(bucket, upload["path"])
            return debug_info

        except Exception as e:
            logger.error(f"Debug upload error: {str(e)}")
            debug_info.upload_result = UploadResult(success=False, error=f"Error general: {str(e)}")
            return debug_info
