"""
Armado de ds:Signature e inserción en el documento

La firma queda como primer hijo del primer ExtensionContent, con Id="SignatureSP"
y el certificado del firmante en KeyInfo/X509Data/X509Certificate (DER en
base64, sin encabezados PEM ni saltos de línea). El resto del documento no se
modifica: la firma se serializa aparte y se inserta en el texto original.
"""
import copy
import logging
import re

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from lxml import etree

from .constants import ANCHOR_LOCAL_NAME, DS_NS, DS_PREFIX, SIGNATURE_ID
from .exceptions import StructureError
from .structure import DocumentAnchors

logger = logging.getLogger(__name__)

_PEM_DELIMITER = re.compile(r"-----(BEGIN|END) CERTIFICATE-----")
_LINE_BREAKS = re.compile(r"(\r\n|\n|\r)")
# Comentarios, CDATA, PIs y DOCTYPE se consumen enteros para que un
# "<ExtensionContent" dentro de ellos no cuente como etiqueta
_MARKUP = re.compile(
    r"<!--.*?-->"
    r"|<!\[CDATA\[.*?\]\]>"
    r"|<\?.*?\?>"
    r"|<!DOCTYPE(?:[^\[>]|\[.*?\])*>"
    r"|<(?P<name>[^\s/>!?]+)"
    r"(?:\s+[^\s=/>]+\s*=\s*(?:\"[^\"]*\"|'[^']*'))*"
    r"\s*(?P<empty>/?)>",
    re.DOTALL,
)


def _ds(local_name: str) -> str:
    return f"{{{DS_NS}}}{local_name}"


def certificate_body(certificate: x509.Certificate) -> str:
    """Certificado PEM sin BEGIN/END CERTIFICATE ni saltos de línea"""
    pem = certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")
    pem = _PEM_DELIMITER.sub("", pem)
    return _LINE_BREAKS.sub("", pem).strip()


def build_key_info(certificate: x509.Certificate) -> etree._Element:
    """
    Construye ds:KeyInfo a partir del certificado.

    Función pura: el mismo certificado produce siempre el mismo fragmento.
    """
    key_info = etree.Element(_ds("KeyInfo"), nsmap={DS_PREFIX: DS_NS})
    x509_data = etree.SubElement(key_info, _ds("X509Data"))
    etree.SubElement(x509_data, _ds("X509Certificate")).text = certificate_body(certificate)
    return key_info


def build_signature(signed_info: etree._Element, key_info: etree._Element) -> etree._Element:
    """
    Crea ds:Signature con SignedInfo, SignatureValue (vacío hasta firmar) y KeyInfo.
    """
    signature = etree.Element(_ds("Signature"), nsmap={DS_PREFIX: DS_NS})
    signature.set("Id", SIGNATURE_ID)
    signature.append(signed_info)
    etree.SubElement(signature, _ds("SignatureValue"))
    signature.append(key_info)
    return signature


def insert_signature(anchors: DocumentAnchors, signature: etree._Element) -> None:
    """Inserta la firma como primer hijo del ExtensionContent, sin agregar texto"""
    signature.tail = None
    anchors.extension_content.insert(0, signature)
    logger.debug(f"Firma insertada en {anchors.extension_content.tag}")


def signed_info_of(signature: etree._Element) -> etree._Element:
    return signature.find(_ds("SignedInfo"))


def set_signature_value(signature: etree._Element, signature_value: str) -> None:
    signature.find(_ds("SignatureValue")).text = signature_value


def serialize_signature(signature: etree._Element) -> str:
    """
    Serializa solo ds:Signature, sin declaraciones de namespace que no usa.

    lxml copia en la raíz del fragmento los namespaces de los ancestros; los
    que la firma no usa se descartan.
    """
    detached = copy.deepcopy(signature)
    etree.cleanup_namespaces(detached)
    return etree.tostring(detached, encoding="unicode", with_tail=False)


def _anchor_start_tag(xml: str) -> re.Match:
    for match in _MARKUP.finditer(xml):
        name = match.group("name")
        if name and name.rpartition(":")[2] == ANCHOR_LOCAL_NAME:
            return match
    raise StructureError(
        f'Error, la estructura XML no contiene el nodo de firma "{ANCHOR_LOCAL_NAME}"'
    )


def splice_signature(original_xml: str, signature: etree._Element) -> str:
    """
    Inserta la firma serializada en el texto original del documento.

    La firma va justo después de la etiqueta de apertura del primer
    ExtensionContent. Un ExtensionContent vacío (<ext:ExtensionContent/>) se
    expande a apertura y cierre. El resto del texto, incluidos BOM, declaración
    XML y whitespace final, queda igual byte a byte.
    """
    match = _anchor_start_tag(original_xml)
    start_tag = match.group(0)
    fragment = serialize_signature(signature)

    if match.group("empty"):
        # "<x .../>" -> "<x ...>" + firma + "</x>"
        fragment = f"{start_tag[:-2]}>{fragment}</{match.group('name')}>"
    else:
        fragment = f"{start_tag}{fragment}"

    return f"{original_xml[:match.start()]}{fragment}{original_xml[match.end():]}"
