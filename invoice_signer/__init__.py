"""
Firma digital XMLDSig enveloped de facturas XML (UBL) con certificados PKCS#12
"""
from .exceptions import (
    InputError,
    InvoiceSignerError,
    KeystoreError,
    SigningError,
    StructureError,
)
from .keystore import KeyMaterial, extract_key_material, read_keystore
from .pipeline import (
    SigningOutcome,
    SigningState,
    async_sign_invoice_xml_with_keystore_file,
    run_signing,
    sign_invoice_xml,
    sign_invoice_xml_with_keystore_file,
)
from .verifier import verify_signed_xml

__all__ = [
    'InvoiceSignerError', 'InputError', 'StructureError', 'KeystoreError', 'SigningError',
    'KeyMaterial', 'extract_key_material', 'read_keystore',
    'SigningOutcome', 'SigningState', 'run_signing', 'sign_invoice_xml',
    'sign_invoice_xml_with_keystore_file', 'async_sign_invoice_xml_with_keystore_file',
    'verify_signed_xml',
]
