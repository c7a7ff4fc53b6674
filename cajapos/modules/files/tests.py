"""
Tests para storage e imágenes

Cubre:
- Redimensionado con proporción y sin ampliar
- Detección de Android / móvil
- Subida: archivo vacío, error de auth, timeout, éxito con URL pública
- Diagnósticos de conexión, bucket y subida instrumentada
"""

import asyncio
import io

import httpx
import pytest
from PIL import Image

from cajapos.core.config import settings
from cajapos.modules.files.images import (
    create_optimized_file, get_network_info, is_android_device, is_mobile_device, process_image
)
from cajapos.modules.files.schemas import FileData
from cajapos.modules.files.service import StorageError, StorageService

ANDROID_UA = "Mozilla/5.0 (Linux; Android 13; SM-A145M) AppleWebKit/537.36 Mobile Safari/537.36"
IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15"
DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

UPLOAD_PATH = "/storage/v1/object/product-images/productos/*"


def make_image(width, height, mode="RGB", fmt="PNG", name="foto.png"):
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color=(200, 30, 30, 255)[:len(mode)]).save(buffer, format=fmt)
    return FileData(name=name, content=buffer.getvalue(), content_type=f"image/{fmt.lower()}")


def upload_ok(request):
    return httpx.Response(200, json={"Key": f"product-images/{request.url.path.split('/product-images/', 1)[1]}"})


# ===== FIXTURES =====

@pytest.fixture
def storage(signed_in):
    return StorageService(signed_in)


# ===== TESTS DE IMÁGENES =====

class TestImageProcessing:

    def test_downscale_keeps_aspect_ratio(self):
        processed = process_image(make_image(4000, 3000), max_width=1920, max_height=1080)

        image = Image.open(io.BytesIO(processed.content))
        assert image.size == (1440, 1080)
        assert image.format == "JPEG"
        assert processed.content_type == "image/jpeg"
        assert processed.name == "foto.png"

    def test_small_image_not_enlarged(self):
        processed = process_image(make_image(300, 200))
        assert Image.open(io.BytesIO(processed.content)).size == (300, 200)

    def test_rgba_converted_for_jpeg(self):
        processed = process_image(make_image(50, 50, mode="RGBA"))
        assert Image.open(io.BytesIO(processed.content)).mode == "RGB"

    def test_device_detection(self):
        assert is_android_device(ANDROID_UA)
        assert not is_android_device(IPHONE_UA)
        assert is_mobile_device(IPHONE_UA)
        assert not is_mobile_device(DESKTOP_UA)
        assert not is_mobile_device(None)

        info = get_network_info(ANDROID_UA)
        assert info.is_android and info.is_mobile

    def test_optimized_only_on_android(self):
        original = make_image(2500, 1000)

        assert create_optimized_file(original, DESKTOP_UA) is original
        optimized = create_optimized_file(original, ANDROID_UA)
        assert Image.open(io.BytesIO(optimized.content)).size == (1920, 768)

    def test_optimized_falls_back_on_invalid_image(self):
        broken = FileData(name="x.jpg", content=b"not an image", content_type="image/jpeg")
        assert create_optimized_file(broken, ANDROID_UA) is broken


# ===== TESTS DE SUBIDA =====

class TestUploadToStorage:

    async def test_upload_success(self, storage, backend):
        backend.on("POST", UPLOAD_PATH, handler=upload_ok)

        result = await storage.upload_to_storage(make_image(10, 10, name="foto.png"))

        assert result.success
        assert result.path.startswith("productos/")
        assert result.path.endswith(".png")
        assert result.url == f"http://supabase.test/storage/v1/object/public/product-images/{result.path}"

    async def test_default_extension(self, storage, backend):
        backend.on("POST", UPLOAD_PATH, handler=upload_ok)

        result = await storage.upload_to_storage(FileData(name="captura", content=b"x", content_type="image/jpeg"))

        assert result.path.endswith(".jpg")

    async def test_empty_file_rejected(self, storage, backend):
        result = await storage.upload_to_storage(FileData(name="vacio.jpg", content=b""))

        assert not result.success
        assert result.error == "Archivo inválido o vacío"
        assert backend.calls("POST", UPLOAD_PATH) == []

    async def test_unauthenticated(self, supabase, backend):
        result = await StorageService(supabase).upload_to_storage(make_image(10, 10))

        assert not result.success
        assert result.error.startswith("Error de autenticación")
        assert backend.calls("POST", UPLOAD_PATH) == []

    async def test_auth_check_timeout_continues(self, storage, backend, monkeypatch):
        """Test si la verificación de auth excede el tiempo se sube igual"""
        monkeypatch.setattr(settings, "AUTH_CHECK_TIMEOUT", 0.01)

        async def slow_user(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={"id": "x"})

        backend.on("GET", "/auth/v1/user", handler=slow_user)
        backend.on("POST", UPLOAD_PATH, handler=upload_ok)

        result = await storage.upload_to_storage(make_image(10, 10))

        assert result.success

    async def test_upload_timeout(self, storage, backend, monkeypatch):
        monkeypatch.setattr(settings, "UPLOAD_TIMEOUT", 0.05)

        async def slow_upload(request):
            await asyncio.sleep(1)
            return upload_ok(request)

        backend.on("POST", UPLOAD_PATH, handler=slow_upload)

        result = await storage.upload_to_storage(make_image(10, 10))

        assert not result.success
        assert "Timeout después de 0.05 segundos" in result.error

    async def test_upload_error(self, storage, backend):
        backend.on("POST", UPLOAD_PATH, json_body={"message": "new row violates row-level security policy"},
                   status_code=403)

        result = await storage.upload_to_storage(make_image(10, 10))

        assert result.error == "Error de subida: new row violates row-level security policy"

    async def test_upload_product_image_raises(self, storage, backend):
        with pytest.raises(StorageError):
            await storage.upload_product_image(FileData(name="vacio.jpg", content=b""))

    async def test_upload_product_image_direct(self, supabase, backend):
        backend.on("POST", UPLOAD_PATH, handler=upload_ok)

        url = await StorageService(supabase).upload_product_image_direct(make_image(10, 10))

        assert url.startswith("http://supabase.test/storage/v1/object/public/product-images/productos/")
        assert backend.calls("GET", "/auth/v1/user") == []


# ===== TESTS DE DIAGNÓSTICO =====

class TestDiagnostics:

    async def test_check_upload_cleans_up(self, supabase, backend):
        backend.on("POST", "/storage/v1/object/product-images/test/*", handler=upload_ok)
        backend.on("DELETE", "/storage/v1/object/product-images", json_body=[])

        result = await StorageService(supabase).check_upload()

        assert result.success
        removed = backend.calls("DELETE", "/storage/v1/object/product-images")
        assert len(removed) == 1

    async def test_check_image_upload_requires_image(self, supabase, backend):
        text_file = FileData(name="a.txt", content=b"hola", content_type="text/plain")

        result = await StorageService(supabase).check_image_upload(text_file)

        assert result.error == "Tipo de archivo inválido: text/plain"
        assert backend.requests == []

    async def test_check_connection(self, supabase, backend):
        backend.on("GET", "/rest/v1/productos", json_body=[{"id": 1}])

        result = await StorageService(supabase).check_connection()

        assert result.success
        assert backend.calls("GET", "/rest/v1/productos")[0].url.params["limit"] == "1"

    async def test_check_connection_error(self, supabase, backend):
        backend.on("GET", "/rest/v1/productos", json_body={"message": "Invalid API key"}, status_code=401)

        result = await StorageService(supabase).check_connection()

        assert not result.success
        assert result.error == "Error de conexión: Invalid API key"

    async def test_check_bucket_configuration(self, storage, backend):
        backend.on("POST", "/storage/v1/object/list/product-images", json_body=[{"name": "a.jpg"}])

        result = await storage.check_bucket_configuration()

        assert result.success
        assert result.info["files"] == 1
        assert result.info["user"] == "auth-uuid-1"

    async def test_debug_upload_missing_bucket(self, storage, backend):
        backend.on("GET", "/storage/v1/bucket", json_body=[{"name": "otro"}])

        info = await storage.debug_storage_upload(make_image(10, 10), ANDROID_UA)

        assert info.upload_result.success is False
        assert info.upload_result.error == 'Bucket "product-images" no encontrado'
        assert info.network_info.is_android
        assert info.file_info.name == "foto.png"

    async def test_debug_upload_success(self, storage, backend):
        backend.on("GET", "/storage/v1/bucket", json_body=[{"name": "product-images"}])
        backend.on("POST", UPLOAD_PATH, handler=upload_ok)
        backend.on("DELETE", "/storage/v1/object/product-images", json_body=[])

        info = await storage.debug_storage_upload(make_image(10, 10), DESKTOP_UA)

        assert info.upload_result.success
        assert info.upload_result.path.startswith("productos/debug_")
        assert len(backend.calls("DELETE", "/storage/v1/object/product-images")) == 1


# ===== TESTS DE ENDPOINTS =====

class TestStorageEndpoints:
    """Tests para /api/storage/*"""

    def test_connection_ok(self, api):
        test_client, backend = api
        backend.on("GET", "/rest/v1/productos", json_body=[{"id": 1}])

        response = test_client.get("/api/storage/connection")

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_bucket_without_session(self, api):
        test_client, _ = api

        response = test_client.get("/api/storage/bucket")

        assert response.status_code == 200
        assert response.json()["error"] == "Error de autenticación: Usuario no autenticado"
