"""
Cálculo del DigestValue de la única Reference de la firma

La Reference usa URI="" y apunta al primer elemento Invoice del documento.
Transforms, en este orden:
1. enveloped-signature: se quita todo ds:Signature del conjunto de nodos
2. c14n inclusiva (ver invoice_signer.c14n)
Luego SHA-256 y base64.
"""
import base64
import copy
import hashlib
import logging
from dataclasses import dataclass
from typing import Tuple

from lxml import etree

from .c14n import canonicalize
from .constants import (
    DIGEST_ALGORITHM,
    DS_NS,
    SIGNED_CONTENT_LOCAL_NAME,
    SIGNED_CONTENT_XPATH,
    TRANSFORMS,
)
from .exceptions import StructureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reference:
    """Referencia firmada: selector, transforms, algoritmo y valor del digest"""

    digest_value: str
    uri: str = ""
    selector: str = SIGNED_CONTENT_XPATH
    transforms: Tuple[str, ...] = TRANSFORMS
    digest_algorithm: str = DIGEST_ALGORITHM


def _remove_keeping_tail(element: etree._Element) -> None:
    """Quita el elemento del árbol sin perder el texto que le sigue"""
    parent = element.getparent()
    if parent is None:
        return
    if element.tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + element.tail
        else:
            parent.text = (parent.text or "") + element.tail
    parent.remove(element)


def apply_enveloped_transform(element: etree._Element) -> None:
    """Elimina del subárbol todas las ds:Signature (modifica element)"""
    for signature in element.xpath(".//ds:Signature", namespaces={"ds": DS_NS}):
        _remove_keeping_tail(signature)


def canonical_signed_content(root: etree._Element) -> bytes:
    """
    Bytes canónicos del Invoice tras aplicar los transforms.

    Se trabaja sobre una copia del árbol completo: el documento del llamador no
    se toca y la copia conserva las declaraciones de namespace de los ancestros.
    """
    root_copy = copy.deepcopy(root.getroottree().getroot())
    invoices = root_copy.xpath(SIGNED_CONTENT_XPATH)
    if not invoices:
        raise StructureError(
            f'Error, la estructura XML no contiene el elemento a firmar "{SIGNED_CONTENT_LOCAL_NAME}"'
        )
    invoice = invoices[0]
    apply_enveloped_transform(invoice)
    return canonicalize(invoice)


def compute_digest(data: bytes) -> str:
    return base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")


def digest_reference(root: etree._Element) -> Reference:
    """
    Calcula la Reference de la firma sobre el documento.

    Args:
        root: Cualquier elemento del documento a firmar

    Returns:
        Reference con DigestValue en base64
    """
    canonical = canonical_signed_content(root)
    reference = Reference(digest_value=compute_digest(canonical))
    logger.debug(
        f"Digest SHA-256 calculado sobre {len(canonical)} bytes canónicos: {reference.digest_value}"
    )
    return reference
