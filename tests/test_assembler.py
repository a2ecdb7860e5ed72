"""
Tests para el armado e inserción de ds:Signature
"""
import base64

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from lxml import etree

from invoice_signer.assembler import (
    build_key_info,
    build_signature,
    certificate_body,
    insert_signature,
    serialize_signature,
    splice_signature,
)
from invoice_signer.digest import Reference
from invoice_signer.exceptions import StructureError
from invoice_signer.signer import build_signed_info
from invoice_signer.structure import parse_document, validate_structure

DS = "http://www.w3.org/2000/09/xmldsig#"
NS = {"ds": DS}


def _signature(certificate):
    signed_info = build_signed_info(Reference(digest_value="AAAA"))
    return build_signature(signed_info, build_key_info(certificate))


def test_certificate_body_strips_pem(fixed_certificate):
    body = certificate_body(fixed_certificate)

    assert "BEGIN CERTIFICATE" not in body
    assert "END CERTIFICATE" not in body
    assert "\n" not in body and "\r" not in body
    pem_lines = fixed_certificate.public_bytes(serialization.Encoding.PEM).decode("ascii").splitlines()
    assert body == "".join(line for line in pem_lines if not line.startswith("-----"))


def test_certificate_body_is_der_base64(fixed_certificate):
    der = base64.b64decode(certificate_body(fixed_certificate))
    assert x509.load_der_x509_certificate(der) == fixed_certificate


def test_build_key_info(fixed_certificate):
    key_info = build_key_info(fixed_certificate)

    assert key_info.tag == f"{{{DS}}}KeyInfo"
    texts = key_info.xpath("ds:X509Data/ds:X509Certificate/text()", namespaces=NS)
    assert texts == [certificate_body(fixed_certificate)]


def test_build_key_info_is_pure(fixed_certificate):
    first = etree.tostring(build_key_info(fixed_certificate))
    second = etree.tostring(build_key_info(fixed_certificate))
    assert first == second


def test_build_signature(fixed_certificate):
    signature = _signature(fixed_certificate)

    assert signature.tag == f"{{{DS}}}Signature"
    assert signature.prefix == "ds"
    assert signature.get("Id") == "SignatureSP"
    assert [etree.QName(child).localname for child in signature] == [
        "SignedInfo",
        "SignatureValue",
        "KeyInfo",
    ]


def test_insert_signature_first_child(fixed_certificate):
    xml = (
        '<Invoice xmlns:ext="urn:ext"><ext:ExtensionContent>'
        '<Other/></ext:ExtensionContent><ext:ExtensionContent/></Invoice>'
    )
    anchors = validate_structure(parse_document(xml))
    signature = _signature(fixed_certificate)

    insert_signature(anchors, signature)

    first, second = anchors.root.xpath("//ext:ExtensionContent", namespaces={"ext": "urn:ext"})
    assert first[0] is signature
    assert etree.QName(first[1]).localname == "Other"
    assert len(second) == 0
    assert signature.tail is None


def test_serialize_signature_declares_only_ds(fixed_certificate):
    xml = (
        '<Invoice xmlns="urn:inv" xmlns:cbc="urn:cbc" xmlns:ext="urn:ext">'
        '<ext:ExtensionContent/><cbc:ID>1</cbc:ID></Invoice>'
    )
    anchors = validate_structure(parse_document(xml))
    signature = _signature(fixed_certificate)
    insert_signature(anchors, signature)

    fragment = serialize_signature(signature)

    assert fragment.startswith(f'<ds:Signature xmlns:ds="{DS}" Id="SignatureSP">')
    assert "urn:cbc" not in fragment and "urn:inv" not in fragment
    assert anchors.extension_content[0] is signature


def test_splice_signature_expands_empty_anchor(fixed_certificate):
    original = '<?xml version="1.0"?>\n<Invoice xmlns:ext="urn:ext"><ext:ExtensionContent /></Invoice>\n'
    signature = _signature(fixed_certificate)

    signed = splice_signature(original, signature)

    fragment = serialize_signature(signature)
    assert signed == (
        '<?xml version="1.0"?>\n<Invoice xmlns:ext="urn:ext">'
        f'<ext:ExtensionContent >{fragment}</ext:ExtensionContent></Invoice>\n'
    )


def test_splice_signature_goes_before_existing_content(fixed_certificate):
    original = "<Invoice><ExtensionContent>\n  <Other a='1'></Other>\n</ExtensionContent></Invoice>"
    signature = _signature(fixed_certificate)

    signed = splice_signature(original, signature)

    root = parse_document(signed)
    extension_content = root[0]
    assert etree.QName(extension_content[0]).localname == "Signature"
    assert etree.QName(extension_content[1]).localname == "Other"
    assert signed.replace(serialize_signature(signature), "") == original


def test_splice_signature_skips_markup_mentions(fixed_certificate):
    """Comentarios, CDATA y atributos que mencionan el ancla no cuentan"""
    original = (
        "\ufeff<!-- va en <ExtensionContent/> -->"
        "<Invoice note='ExtensionContent > x'>"
        "<Note><![CDATA[<ExtensionContent/>]]></Note>"
        "<?pi <ExtensionContent/>?>"
        "<ext:ExtensionContent xmlns:ext='urn:ext'></ext:ExtensionContent>"
        "</Invoice>"
    )
    fragment = serialize_signature(_signature(fixed_certificate))

    signed = splice_signature(original, _signature(fixed_certificate))

    assert signed == original.replace(
        "<ext:ExtensionContent xmlns:ext='urn:ext'>",
        f"<ext:ExtensionContent xmlns:ext='urn:ext'>{fragment}",
    )
    assert signed.startswith("\ufeff<!--")


def test_splice_signature_without_anchor(fixed_certificate):
    with pytest.raises(StructureError, match="ExtensionContent"):
        splice_signature("<Invoice><!-- <ExtensionContent/> --></Invoice>", _signature(fixed_certificate))
