"""
Configuración del firmador de facturas

Centraliza la lectura de variables de entorno (y de un .env local) para el
certificado de firma. Los algoritmos XMLDSig no son configurables: ver
invoice_signer.constants.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import InputError

load_dotenv()

ENV_PFX_PATH = "INVOICE_SIGNER_PFX_PATH"
ENV_PFX_PASSWORD = "INVOICE_SIGNER_PFX_PASSWORD"
ENV_PFX_PASSWORD_FILE = "INVOICE_SIGNER_PFX_PASSWORD_FILE"
ENV_LOG_LEVEL = "INVOICE_SIGNER_LOG_LEVEL"


def _read_password_file(path: str) -> str:
    password_file = Path(path)
    if not password_file.is_file():
        raise InputError(f"Archivo de contraseña no encontrado: {path}")
    # Solo se descarta el salto de línea final, la contraseña puede tener espacios
    return password_file.read_text(encoding="utf-8").rstrip("\r\n")


@dataclass(frozen=True)
class SignerConfig:
    """Configuración del certificado de firma"""

    pfx_path: Optional[Path]
    pfx_password: str
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        pfx_path: Optional[str] = None,
        pfx_password: Optional[str] = None,
    ) -> "SignerConfig":
        """
        Construye la configuración a partir de argumentos explícitos y, en su
        defecto, de las variables de entorno.

        Args:
            pfx_path: Ruta al certificado PFX/P12. Si None, lee INVOICE_SIGNER_PFX_PATH
            pfx_password: Contraseña. Si None, lee INVOICE_SIGNER_PFX_PASSWORD o
                el archivo indicado en INVOICE_SIGNER_PFX_PASSWORD_FILE

        Returns:
            SignerConfig completo
        """
        path = pfx_path or os.getenv(ENV_PFX_PATH)

        password = pfx_password
        if password is None:
            password = os.getenv(ENV_PFX_PASSWORD)
        if password is None:
            password_file = os.getenv(ENV_PFX_PASSWORD_FILE)
            if password_file:
                password = _read_password_file(password_file)

        log_level = os.getenv(ENV_LOG_LEVEL, "INFO").upper()

        return cls(
            pfx_path=Path(path) if path else None,
            pfx_password=password or "",
            log_level=log_level,
        )
