"""
Validación de estructura del XML antes de tocar el keystore

Se exige al menos un elemento ExtensionContent (donde va la firma) y un
elemento Invoice (el contenido firmado). El prefijo de namespace se ignora:
la búsqueda es por local-name().
"""
import logging
from dataclasses import dataclass

from lxml import etree

from .constants import (
    ANCHOR_LOCAL_NAME,
    ANCHOR_XPATH,
    SIGNED_CONTENT_LOCAL_NAME,
    SIGNED_CONTENT_XPATH,
)
from .exceptions import StructureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentAnchors:
    """Documento parseado con sus dos elementos obligatorios ya ubicados"""

    root: etree._Element
    extension_content: etree._Element
    invoice: etree._Element


def _make_parser() -> etree.XMLParser:
    # Sin remove_blank_text: el whitespace del documento debe sobrevivir intacto
    return etree.XMLParser(
        encoding="utf-8",
        remove_blank_text=False,
        remove_comments=False,
        strip_cdata=False,
        resolve_entities=False,
        no_network=True,
    )


def parse_document(xml: str) -> etree._Element:
    """
    Parsea el XML de la factura.

    Args:
        xml: Texto XML (puede incluir la declaración <?xml ...?>)

    Returns:
        Elemento raíz del árbol lxml

    Raises:
        StructureError: Si el texto no es XML bien formado
    """
    if not xml or not xml.strip():
        raise StructureError("El XML está vacío")
    try:
        return etree.fromstring(xml.encode("utf-8"), parser=_make_parser())
    except etree.XMLSyntaxError as e:
        raise StructureError(f"Error al parsear XML: {e}") from e


def validate_structure(root: etree._Element) -> DocumentAnchors:
    """
    Ubica el primer ExtensionContent y el primer Invoice del documento.

    Raises:
        StructureError: Si falta alguno de los dos elementos
    """
    anchors = root.xpath(ANCHOR_XPATH)
    if not anchors:
        raise StructureError(
            f'Error, la estructura XML no contiene el nodo de firma "{ANCHOR_LOCAL_NAME}"'
        )

    invoices = root.xpath(SIGNED_CONTENT_XPATH)
    if not invoices:
        raise StructureError(
            f'Error, la estructura XML no contiene el elemento a firmar "{SIGNED_CONTENT_LOCAL_NAME}"'
        )

    if len(anchors) > 1:
        logger.debug(f"{len(anchors)} elementos {ANCHOR_LOCAL_NAME}; se usa el primero")

    return DocumentAnchors(root=root, extension_content=anchors[0], invoice=invoices[0])
