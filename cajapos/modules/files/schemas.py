"""
Esquemas para archivos, subidas y diagnóstico de storage.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
import time

from cajapos.common.results import UploadResult


def now_ms() -> int:
    return int(time.time() * 1000)


class FileData(BaseModel):
    """Archivo en memoria listo para subir"""
    name: str = Field(description="Nombre original del archivo")
    content: bytes = Field(default=b"", description="Contenido binario")
    content_type: str = Field(default="application/octet-stream", description="Tipo MIME")
    last_modified: int = Field(default_factory=now_ms, description="Marca de tiempo en ms")

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        if "." in self.name:
            ext = self.name.rsplit(".", 1)[1]
            if ext:
                return ext
        return "jpg"


class FileInfo(BaseModel):
    name: str
    size: int
    type: str
    last_modified: int

    @classmethod
    def from_file(cls, file: FileData) -> "FileInfo":
        return cls(name=file.name, size=file.size, type=file.content_type, last_modified=file.last_modified)


class NetworkInfo(BaseModel):
    user_agent: str = ""
    is_android: bool = False
    is_mobile: bool = False
    connection_type: Optional[str] = None


class StorageDebugInfo(BaseModel):
    file_info: FileInfo
    upload_result: UploadResult = Field(default_factory=lambda: UploadResult(success=False))
    network_info: NetworkInfo


class DiagnosticResult(BaseModel):
    """Resultado de una verificación de conexión o de bucket"""
    success: bool
    info: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
