"""
Verificación de la firma ds:Signature[@Id='SignatureSP'] de una factura firmada

Recalcula el DigestValue (enveloped-signature + c14n sobre Invoice) y verifica
el SignatureValue sobre SignedInfo canonicalizado con la clave pública del
certificado embebido en KeyInfo. No valida la cadena de confianza.
"""
import base64
import binascii
import logging

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .c14n import canonicalize
from .constants import C14N_ALGORITHM, DS_NS, SIGNATURE_ALGORITHM, SIGNATURE_ID, TRANSFORMS
from .digest import canonical_signed_content, compute_digest
from .exceptions import InvoiceSignerError
from .structure import parse_document

logger = logging.getLogger(__name__)

_NS = {"ds": DS_NS}


def verify_signed_xml(signed_xml: str) -> bool:
    """
    Verifica la firma de un XML firmado

    Args:
        signed_xml: XML firmado a verificar

    Returns:
        True si el digest y la firma son válidos, False en caso contrario
    """
    try:
        root = parse_document(signed_xml)
    except InvoiceSignerError as e:
        logger.error(f"Error al verificar firma: {e}")
        return False

    signatures = root.xpath("//ds:Signature[@Id=$sig_id]", namespaces=_NS, sig_id=SIGNATURE_ID)
    if not signatures:
        logger.error(f"No se encontró ds:Signature con Id={SIGNATURE_ID}")
        return False
    signature = signatures[0]

    signed_info = signature.find("ds:SignedInfo", _NS)
    if signed_info is None:
        logger.error("ds:Signature sin ds:SignedInfo")
        return False

    c14n_alg = signed_info.xpath("string(ds:CanonicalizationMethod/@Algorithm)", namespaces=_NS)
    sig_alg = signed_info.xpath("string(ds:SignatureMethod/@Algorithm)", namespaces=_NS)
    transforms = tuple(signed_info.xpath("ds:Reference/ds:Transforms/ds:Transform/@Algorithm", namespaces=_NS))
    if c14n_alg != C14N_ALGORITHM or sig_alg != SIGNATURE_ALGORITHM or transforms != TRANSFORMS:
        logger.error(
            f"Algoritmos inesperados: c14n={c14n_alg}, firma={sig_alg}, transforms={transforms}"
        )
        return False

    expected_digest = signed_info.xpath("string(ds:Reference/ds:DigestValue)", namespaces=_NS).strip()
    try:
        actual_digest = compute_digest(canonical_signed_content(root))
    except InvoiceSignerError as e:
        logger.error(f"Error al recalcular digest: {e}")
        return False
    if actual_digest != expected_digest:
        logger.error(f"DigestValue no coincide. Esperado: {expected_digest}, calculado: {actual_digest}")
        return False

    cert_text = signature.xpath("string(ds:KeyInfo/ds:X509Data/ds:X509Certificate)", namespaces=_NS)
    signature_text = signature.xpath("string(ds:SignatureValue)", namespaces=_NS)
    try:
        certificate = x509.load_der_x509_certificate(base64.b64decode("".join(cert_text.split())))
        signature_bytes = base64.b64decode("".join(signature_text.split()))
    except (ValueError, binascii.Error) as e:
        logger.error(f"Certificado o SignatureValue ilegibles: {e}")
        return False

    public_key = certificate.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        logger.error("El certificado no contiene una clave pública RSA")
        return False

    try:
        public_key.verify(signature_bytes, canonicalize(signed_info), padding.PKCS1v15(), hashes.SHA1())
    except InvalidSignature:
        logger.error("SignatureValue inválido para el certificado embebido")
        return False
    except InvoiceSignerError as e:
        logger.error(f"Error al canonicalizar SignedInfo: {e}")
        return False

    logger.info("Firma verificada correctamente")
    return True
