"""
Construcción y firma de ds:SignedInfo

- CanonicalizationMethod: c14n inclusiva 1.0
- SignatureMethod: RSA-SHA1 (PKCS#1 v1.5)
- Una sola Reference con URI="" (enveloped-signature + c14n, digest SHA-256)
"""
import base64
import logging

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from lxml import etree

from .c14n import canonicalize
from .constants import C14N_ALGORITHM, DS_NS, DS_PREFIX, SIGNATURE_ALGORITHM
from .digest import Reference
from .exceptions import SigningError

logger = logging.getLogger(__name__)


def _ds(local_name: str) -> str:
    return f"{{{DS_NS}}}{local_name}"


def build_signed_info(reference: Reference) -> etree._Element:
    """
    Crea el elemento ds:SignedInfo con la Reference indicada.

    Returns:
        ds:SignedInfo listo para insertarse en ds:Signature
    """
    signed_info = etree.Element(_ds("SignedInfo"), nsmap={DS_PREFIX: DS_NS})

    etree.SubElement(signed_info, _ds("CanonicalizationMethod")).set("Algorithm", C14N_ALGORITHM)
    etree.SubElement(signed_info, _ds("SignatureMethod")).set("Algorithm", SIGNATURE_ALGORITHM)

    reference_elem = etree.SubElement(signed_info, _ds("Reference"))
    reference_elem.set("URI", reference.uri)

    transforms = etree.SubElement(reference_elem, _ds("Transforms"))
    for algorithm in reference.transforms:
        etree.SubElement(transforms, _ds("Transform")).set("Algorithm", algorithm)

    etree.SubElement(reference_elem, _ds("DigestMethod")).set("Algorithm", reference.digest_algorithm)
    etree.SubElement(reference_elem, _ds("DigestValue")).text = reference.digest_value

    return signed_info


def sign_bytes(data: bytes, private_key: rsa.RSAPrivateKey) -> str:
    """Firma RSA-SHA1 (PKCS#1 v1.5) y devuelve el valor en base64"""
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise SigningError(
            f"La clave privada debe ser RSA para rsa-sha1, se recibió {type(private_key).__name__}"
        )
    try:
        signature = private_key.sign(data, padding.PKCS1v15(), hashes.SHA1())
    except Exception as e:
        raise SigningError(f"Error en la firma RSA-SHA1: {e}") from e
    return base64.b64encode(signature).decode("ascii")


def sign_signed_info(signed_info: etree._Element, private_key: rsa.RSAPrivateKey) -> str:
    """
    Canonicaliza SignedInfo en su posición actual del documento y lo firma.

    Args:
        signed_info: ds:SignedInfo ya insertado en el documento final
        private_key: Clave privada RSA extraída del keystore

    Returns:
        SignatureValue en base64

    Raises:
        SigningError: Si falla la canonicalización o la firma
    """
    canonical = canonicalize(signed_info)
    signature_value = sign_bytes(canonical, private_key)
    logger.debug(f"SignedInfo canónico: {len(canonical)} bytes firmados con rsa-sha1")
    return signature_value
