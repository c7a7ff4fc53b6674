from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, Optional


class UserProfile(BaseModel):
    """Perfil de aplicación (tabla usuarios + nombre del rol)"""
    id: int
    nombres: str
    usuario: str
    direccion: Optional[str] = None
    telefono: Optional[str] = None
    id_rol: int
    estado: Optional[str] = None
    role: str = Field(description="Nombre del rol (join con roles)")


class AuthState(BaseModel):
    """Estado de sesión publicado a la aplicación"""
    user: Optional[Dict[str, Any]] = None
    profile: Optional[UserProfile] = None
    loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class CompanyCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=200)
    direccion_fiscal: str = ""
    simbolo_moneda: str = Field("Bs", max_length=5)


class AuthProbeRequest(BaseModel):
    email: EmailStr
    password: str
