"""
Extracción de clave privada y certificado desde un keystore PKCS#12 (PFX/P12)

El keystore se consume una sola vez por operación: los bytes y la contraseña
entran, sale un KeyMaterial que vive solo mientras dura la firma. No hay cache
de material descifrado entre llamadas.

Limitación conocida: si el contenedor trae varios certificados (p. ej. una
cadena con la CA) se usa el certificado asociado a la clave privada y, si no
hay ninguno asociado, el primero de los adicionales. El resto se ignora y se
avisa por log.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12

from .constants import KEYSTORE_EXTENSIONS
from .exceptions import InputError, KeystoreError

logger = logging.getLogger(__name__)

# Tag ASN.1 de SEQUENCE, primer byte de todo PFX codificado en DER
_DER_SEQUENCE_TAG = 0x30


@dataclass(frozen=True)
class KeyMaterial:
    """Clave privada + certificado recuperados de un keystore"""

    private_key: PrivateKeyTypes
    certificate: x509.Certificate

    @classmethod
    def create(cls, private_key: Any, certificate: Any) -> "KeyMaterial":
        if private_key is None:
            raise KeystoreError("No se encontró bolsa de clave privada en el archivo PFX")
        if certificate is None:
            raise KeystoreError("No se encontró bolsa de certificado en el archivo PFX")
        return cls(private_key=private_key, certificate=certificate)


def read_keystore(path: Union[str, Path]) -> bytes:
    """
    Valida la ruta del keystore y lee sus bytes.

    Args:
        path: Ruta al archivo .pfx/.p12

    Returns:
        Contenido binario del keystore

    Raises:
        InputError: Si la ruta está vacía, la extensión no es .pfx/.p12,
                    el archivo no existe o no se puede leer
    """
    if not path:
        raise InputError("Ruta del keystore vacía: debe ser un archivo .pfx o .p12")

    keystore_file = Path(path)
    if keystore_file.suffix.lower() not in KEYSTORE_EXTENSIONS:
        raise InputError(
            f"Extensión de keystore inválida: {keystore_file.name} "
            f"(se esperaba {' o '.join(KEYSTORE_EXTENSIONS)})"
        )

    if not keystore_file.exists():
        raise InputError(f"Archivo de keystore no encontrado: {keystore_file}")

    if not keystore_file.is_file():
        raise InputError(f"La ruta no es un archivo: {keystore_file}")

    try:
        data = keystore_file.read_bytes()
    except OSError as e:
        raise InputError(f"No se pudo leer el keystore {keystore_file}: {e}") from e

    logger.debug(f"Keystore leído: {keystore_file.name} ({len(data)} bytes)")
    return data


def extract_key_material(data: bytes, password: str) -> KeyMaterial:
    """
    Parsea el contenedor PKCS#12 y recupera clave privada y certificado.

    Args:
        data: Bytes DER del keystore
        password: Contraseña del keystore (vacía si no está cifrado)

    Returns:
        KeyMaterial con clave y certificado

    Raises:
        KeystoreError: Si el contenedor no es DER válido, la contraseña es
                       incorrecta, o falta la clave o el certificado
    """
    if not data or data[0] != _DER_SEQUENCE_TAG:
        raise KeystoreError("El keystore no es un contenedor ASN.1 DER válido")

    password_bytes = password.encode("utf-8") if password else None

    try:
        p12 = pkcs12.load_pkcs12(data, password_bytes)
    except ValueError as e:
        # cryptography no distingue entre contraseña incorrecta y datos corruptos
        raise KeystoreError(
            "Contraseña del keystore incorrecta o el archivo PKCS#12 está corrupto"
        ) from e

    certificate = None
    extra_certs = list(p12.additional_certs)
    if p12.cert is not None:
        certificate = p12.cert.certificate
    elif extra_certs:
        certificate = extra_certs.pop(0).certificate

    if extra_certs:
        logger.warning(
            f"El keystore contiene {len(extra_certs)} certificado(s) adicional(es) "
            "que se ignoran"
        )

    material = KeyMaterial.create(p12.key, certificate)
    logger.info(f"Keystore descifrado. Sujeto: {material.certificate.subject.rfc4514_string()}")
    return material


def describe_certificate(certificate: x509.Certificate) -> Dict[str, Any]:
    """
    Obtiene información del certificado para logs y la CLI

    Returns:
        Diccionario con sujeto, emisor, número de serie y vigencia
    """
    return {
        "subject": certificate.subject.rfc4514_string(),
        "issuer": certificate.issuer.rfc4514_string(),
        "serial_number": str(certificate.serial_number),
        "not_valid_before": certificate.not_valid_before_utc.isoformat(),
        "not_valid_after": certificate.not_valid_after_utc.isoformat(),
    }
