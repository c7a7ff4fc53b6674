"""
Procesamiento de imágenes antes de subirlas.

Las fotos tomadas desde Android suelen ser muy pesadas; se reducen a un
máximo de 1920x1080 manteniendo la proporción y se recomprimen.
"""
import io
import logging
import re
from typing import Optional

from PIL import Image, UnidentifiedImageError

from cajapos.core.config import settings
from cajapos.modules.files.schemas import FileData, NetworkInfo, now_ms

logger = logging.getLogger(__name__)

ANDROID_PATTERN = re.compile(r"Android", re.IGNORECASE)
MOBILE_PATTERN = re.compile(r"Mobile|Android|iPhone|iPad", re.IGNORECASE)


class ImageProcessingError(Exception):
    pass


def is_android_device(user_agent: Optional[str]) -> bool:
    return bool(user_agent and ANDROID_PATTERN.search(user_agent))


def is_mobile_device(user_agent: Optional[str]) -> bool:
    return bool(user_agent and MOBILE_PATTERN.search(user_agent))


def get_network_info(user_agent: Optional[str], connection_type: Optional[str] = None) -> NetworkInfo:
    return NetworkInfo(
        user_agent=user_agent or "",
        is_android=is_android_device(user_agent),
        is_mobile=is_mobile_device(user_agent),
        connection_type=connection_type,
    )


def process_image(file: FileData, max_width: Optional[int] = None, max_height: Optional[int] = None,
                  quality: Optional[int] = None, fmt: str = "jpeg") -> FileData:
    """
    Redimensionar y recomprimir una imagen.

    Args:
        file: Imagen original
        max_width: Ancho máximo (default: IMAGE_MAX_WIDTH)
        max_height: Alto máximo (default: IMAGE_MAX_HEIGHT)
        quality: Calidad 1-100 para jpeg/webp (default: IMAGE_QUALITY)
        fmt: jpeg, png o webp

    Returns:
        FileData: nueva imagen con el mismo nombre y tipo image/<fmt>

    Raises:
        ImageProcessingError: si el contenido no es una imagen legible
    """
    max_width = max_width or settings.IMAGE_MAX_WIDTH
    max_height = max_height or settings.IMAGE_MAX_HEIGHT
    quality = quality or settings.IMAGE_QUALITY

    try:
        image = Image.open(io.BytesIO(file.content))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError("No se pudo cargar la imagen") from e

    width, height = image.size
    # Solo se reduce, nunca se amplía
    if width > max_width or height > max_height:
        ratio = min(max_width / width, max_height / height)
        new_size = (max(1, round(width * ratio)), max(1, round(height * ratio)))
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    if fmt == "jpeg" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    buffer = io.BytesIO()
    try:
        image.save(buffer, format=fmt.upper(), quality=quality)
    except (OSError, ValueError, KeyError) as e:
        raise ImageProcessingError("No se pudo procesar la imagen") from e

    return FileData(
        name=file.name,
        content=buffer.getvalue(),
        content_type=f"image/{fmt}",
        last_modified=now_ms(),
    )


def create_optimized_file(file: FileData, user_agent: Optional[str] = None) -> FileData:
    """Procesa la imagen solo en Android; ante cualquier error usa el original"""
    if is_android_device(user_agent) and file.content_type.startswith("image/"):
        try:
            logger.info("Procesando imagen para Android...")
            processed = process_image(file)
            compression = (1 - processed.size / file.size) * 100 if file.size else 0
            logger.info(
                f"Imagen procesada: {file.size} -> {processed.size} bytes ({compression:.1f}%)"
            )
            return processed
        except ImageProcessingError as e:
            logger.warning(f"Error procesando imagen, usando archivo original: {e}")
            return file

    return file
