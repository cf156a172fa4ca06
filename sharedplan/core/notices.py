"""User-facing notices (the toast messages shown by the pages and clients).

Messages are keyed by a stable code so API clients can localize on their
side; the service ships the Spanish catalog the product launched with.
Failures of remote calls always map to one generic message per action,
never to exception details.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

NoticeLevel = Literal["success", "error"]

_CATALOG: dict[str, tuple[NoticeLevel, str]] = {
    # identity
    "login_ok": ("success", "Inicio de sesión exitoso"),
    "login_failed": ("error", "Error al iniciar sesión"),
    "google_login_ok": ("success", "Inicio de sesión con Google exitoso"),
    "google_login_failed": ("error", "Error al iniciar sesión con Google"),
    "register_ok": ("success", "Registro exitoso"),
    "register_failed": ("error", "Error al registrarse"),
    "email_taken": ("error", "Ya existe una cuenta con este correo"),
    "invalid_email": ("error", "Correo electrónico inválido"),
    "weak_password": ("error", "La contraseña debe tener al menos 6 caracteres"),
    "signout_ok": ("success", "Sesión cerrada exitosamente"),
    "signout_failed": ("error", "Error al cerrar sesión"),
    # approval
    "select_group": ("error", "Por favor selecciona un grupo"),
    "approval_ok": ("success", "Usuario aprobado y asignado al grupo"),
    "approval_failed": ("error", "Error al aprobar usuario"),
    "group_full": ("error", "El grupo ya está completo"),
    "user_not_pending": ("error", "El usuario ya fue aprobado"),
    "user_not_found": ("error", "Usuario no encontrado"),
    # directory reads
    "load_failed": ("error", "Error al cargar los datos"),
    # groups
    "fill_all_fields": ("error", "Por favor completa todos los campos"),
    "group_created": ("success", "Grupo creado exitosamente"),
    "group_create_failed": ("error", "Error al crear grupo"),
    "group_deleted": ("success", "Grupo eliminado exitosamente"),
    "group_delete_failed": ("error", "Error al eliminar grupo"),
    "group_not_found": ("error", "Grupo no encontrado"),
    "confirm_delete": (
        "error",
        "¿Estás seguro de que quieres eliminar este grupo?",
    ),
    # member console
    "receipt_sent": ("success", "Comprobante de pago enviado con éxito"),
    "receipt_invalid": ("error", "El comprobante debe ser una imagen o un PDF"),
    "receipt_too_large": ("error", "El comprobante es demasiado grande"),
    "pending_approval": (
        "error",
        "Tu cuenta está pendiente de aprobación. "
        "Por favor, espera a que un administrador la active.",
    ),
}

PENDING_ASSIGNMENT = "Pendiente de asignación"


@dataclass(frozen=True, slots=True)
class Notice:
    code: str
    level: NoticeLevel
    message: str

    def as_detail(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


def notice(code: str) -> Notice:
    """Look up a notice by code. Unknown codes are a programming error."""
    level, message = _CATALOG[code]
    return Notice(code=code, level=level, message=message)


def is_known(code: str) -> bool:
    return code in _CATALOG
