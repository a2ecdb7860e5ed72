"""
Pytest configuration y fixtures para tests del firmador de facturas
"""
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs12

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def build_certificate(private_key, common_name: str = "20123456789") -> x509.Certificate:
    """Certificado autofirmado solo para testing"""
    subject = x509.Name([
        x509.NameAttribute(x509.NameOID.COUNTRY_NAME, "PE"),
        x509.NameAttribute(x509.NameOID.ORGANIZATION_NAME, "Empresa de Prueba SAC"),
        x509.NameAttribute(x509.NameOID.COMMON_NAME, common_name),
    ])
    now = datetime.now(timezone.utc)
    return x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        subject
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now - timedelta(days=1)
    ).not_valid_after(
        now + timedelta(days=365)
    ).sign(private_key, hashes.SHA256())


@pytest.fixture(scope="session")
def test_certificate_and_key():
    """
    Crea un certificado y clave de prueba para testing
    """
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return build_certificate(private_key), private_key


@pytest.fixture(scope="session")
def ca_certificate():
    """Segundo certificado para simular una cadena dentro del PFX"""
    ca_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return build_certificate(ca_key, common_name="CA de Prueba")


@pytest.fixture
def make_pfx() -> Callable[..., bytes]:
    """Serializa clave/certificados a PKCS#12"""

    def _make(key=None, cert=None, cas=None, password: Optional[str] = "test_password") -> bytes:
        if password:
            encryption = serialization.BestAvailableEncryption(password.encode())
        else:
            encryption = serialization.NoEncryption()
        return pkcs12.serialize_key_and_certificates(
            name=b"test_cert",
            key=key,
            cert=cert,
            cas=cas,
            encryption_algorithm=encryption,
        )

    return _make


@pytest.fixture
def pfx_bytes(test_certificate_and_key, make_pfx):
    cert, private_key = test_certificate_and_key
    return make_pfx(key=private_key, cert=cert)


@pytest.fixture
def ec_pfx_bytes(make_pfx):
    """PFX con clave EC: se extrae pero no sirve para rsa-sha1"""
    ec_key = ec.generate_private_key(ec.SECP256R1())
    return make_pfx(key=ec_key, cert=build_certificate(ec_key))


@pytest.fixture
def pfx_file(pfx_bytes, tmp_path):
    """
    Crea un archivo PFX de prueba
    """
    pfx_path = tmp_path / "test_cert.pfx"
    pfx_path.write_bytes(pfx_bytes)
    return str(pfx_path), "test_password"


@pytest.fixture
def invoice_xml() -> str:
    """Factura UBL fija (ya en forma canónica salvo la declaración XML)"""
    return (FIXTURES_DIR / "invoice.xml").read_text(encoding="utf-8")


@pytest.fixture
def fixed_keystore() -> bytes:
    """Keystore fijo generado con openssl (RSA 2048, contraseña test_password)"""
    return (FIXTURES_DIR / "test_keystore.pfx").read_bytes()


@pytest.fixture
def fixed_certificate() -> x509.Certificate:
    return x509.load_pem_x509_certificate((FIXTURES_DIR / "test_certificate.pem").read_bytes())


@pytest.fixture
def sample_xml():
    """XML mínimo con ExtensionContent e Invoice"""
    return """<?xml version="1.0" encoding="UTF-8"?>
<Invoice xmlns="urn:oasis:names:specification:ubl:schema:xsd:Invoice-2" xmlns:cbc="urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2" xmlns:ext="urn:oasis:names:specification:ubl:schema:xsd:CommonExtensionComponents-2">
  <ext:UBLExtensions>
    <ext:UBLExtension>
      <ext:ExtensionContent/>
    </ext:UBLExtension>
  </ext:UBLExtensions>
  <cbc:ID>B001-00000001</cbc:ID>
</Invoice>
"""
