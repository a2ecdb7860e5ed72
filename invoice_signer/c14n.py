"""
Canonical XML 1.0 (http://www.w3.org/TR/2001/REC-xml-c14n-20010315)

c14n inclusiva, sin comentarios. lxml serializa el subárbol en el contexto de
su documento: las declaraciones de namespace en alcance de los ancestros se
emiten en el elemento raíz del subárbol. Por eso SignedInfo se canonicaliza
una vez insertado en el documento, igual que lo hará el verificador.
"""
from lxml import etree

from .exceptions import SigningError


def canonicalize(element: etree._Element) -> bytes:
    """
    Canonicaliza el subárbol con raíz en element.

    La salida es determinista: atributos ordenados por namespace URI y luego
    por nombre local, declaraciones de namespace normalizadas, elementos
    vacíos expandidos (<a></a>) y comillas dobles.

    Raises:
        SigningError: Si libxml2 no puede canonicalizar el nodo
    """
    try:
        return etree.tostring(
            element,
            method="c14n",
            exclusive=False,
            with_comments=False,
        )
    except (etree.LxmlError, TypeError, ValueError) as e:
        raise SigningError(f"Error al canonicalizar {etree.QName(element).localname}: {e}") from e
