"""
Pipeline de firma XMLDSig enveloped de una factura

Estados por operación (sin reintentos, cualquier error es terminal):

    Idle -> Validated -> KeyExtracted -> Digested -> Signed -> Assembled -> Done

La estructura del XML se valida antes de leer o descifrar el keystore. La
clave privada vive solo dentro de SigningOperation.complete().

IMPORTANTE: c14n inclusiva depende de los namespaces de los ancestros, así que
el esqueleto de ds:Signature se inserta en ExtensionContent antes de
canonicalizar y firmar SignedInfo.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .assembler import (
    build_key_info,
    build_signature,
    insert_signature,
    set_signature_value,
    signed_info_of,
    splice_signature,
)
from .digest import digest_reference
from .exceptions import InvoiceSignerError
from .keystore import extract_key_material, read_keystore
from .signer import build_signed_info, sign_signed_info
from .structure import DocumentAnchors, parse_document, validate_structure

logger = logging.getLogger(__name__)


class SigningState(Enum):
    IDLE = "Idle"
    VALIDATED = "Validated"
    KEY_EXTRACTED = "KeyExtracted"
    DIGESTED = "Digested"
    SIGNED = "Signed"
    ASSEMBLED = "Assembled"
    DONE = "Done"


@dataclass(frozen=True)
class SigningOutcome:
    """Resultado explícito de una operación: XML firmado o error, nunca ambos"""

    state: SigningState
    signed_xml: Optional[str] = None
    error: Optional[InvoiceSignerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.signed_xml is not None


class SigningOperation:
    """
    Una operación de firma sobre un documento ya validado. No se reutiliza.

    Se construye con SigningOperation.validated(xml): no existe una operación
    sin sus elementos ancla.
    """

    def __init__(self, xml: str, anchors: DocumentAnchors):
        self.xml = xml
        self.anchors = anchors
        self.state = SigningState.VALIDATED

    @classmethod
    def validated(cls, xml: str) -> "SigningOperation":
        """
        Parsea el XML y ubica ExtensionContent e Invoice.

        Raises:
            StructureError: Si el XML es inválido o falta alguno de los elementos
        """
        anchors = validate_structure(parse_document(xml))
        logger.debug(f"{SigningState.IDLE.value} -> {SigningState.VALIDATED.value}")
        return cls(xml, anchors)

    def _advance(self, state: SigningState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    def complete(self, keystore: bytes, password: str) -> str:
        """
        Ejecuta el resto del pipeline sobre el documento ya validado.

        Args:
            keystore: Bytes del PKCS#12
            password: Contraseña del PKCS#12

        Returns:
            XML firmado
        """
        key_material = extract_key_material(keystore, password)
        self._advance(SigningState.KEY_EXTRACTED)

        reference = digest_reference(self.anchors.root)
        self._advance(SigningState.DIGESTED)

        signature = build_signature(
            build_signed_info(reference),
            build_key_info(key_material.certificate),
        )
        insert_signature(self.anchors, signature)
        signature_value = sign_signed_info(signed_info_of(signature), key_material.private_key)
        self._advance(SigningState.SIGNED)

        set_signature_value(signature, signature_value)
        signed_xml = splice_signature(self.xml, signature)
        self._advance(SigningState.ASSEMBLED)

        self._advance(SigningState.DONE)
        logger.info("XML firmado exitosamente")
        return signed_xml


def sign_invoice_xml(xml: str, keystore: bytes, password: str) -> str:
    """
    Firma una factura XML con el keystore PKCS#12 dado.

    Args:
        xml: XML de la factura con ExtensionContent e Invoice
        keystore: Bytes del archivo PFX/P12
        password: Contraseña del keystore

    Returns:
        XML firmado con ds:Signature dentro de ExtensionContent

    Raises:
        StructureError, KeystoreError, SigningError
    """
    return SigningOperation.validated(xml).complete(keystore, password)


def run_signing(xml: str, keystore: bytes, password: str) -> SigningOutcome:
    """Igual que sign_invoice_xml pero devuelve un SigningOutcome en vez de lanzar"""
    try:
        operation = SigningOperation.validated(xml)
    except InvoiceSignerError as e:
        logger.error(f"Firma abortada en estado {SigningState.IDLE.value}: {e}")
        return SigningOutcome(state=SigningState.IDLE, error=e)

    try:
        signed_xml = operation.complete(keystore, password)
    except InvoiceSignerError as e:
        logger.error(f"Firma abortada en estado {operation.state.value}: {e}")
        return SigningOutcome(state=operation.state, error=e)
    return SigningOutcome(state=operation.state, signed_xml=signed_xml)


def sign_invoice_xml_with_keystore_file(
    xml: str, keystore_path: Union[str, Path], password: str
) -> str:
    """
    Firma leyendo el keystore desde disco. La estructura se valida antes de
    abrir el archivo.

    Raises:
        InputError, StructureError, KeystoreError, SigningError
    """
    operation = SigningOperation.validated(xml)
    keystore = read_keystore(keystore_path)
    return operation.complete(keystore, password)


async def async_sign_invoice_xml_with_keystore_file(
    xml: str, keystore_path: Union[str, Path], password: str
) -> str:
    """
    Variante async: la lectura del keystore es el único punto de suspensión,
    canonicalización y firma corren de forma síncrona.
    """
    operation = SigningOperation.validated(xml)
    # Leer en thread pool para no bloquear
    loop = asyncio.get_running_loop()
    keystore = await loop.run_in_executor(None, read_keystore, keystore_path)
    return operation.complete(keystore, password)
