"""
Identificadores fijos de algoritmos y namespaces XMLDSig.

Deben coincidir exactamente con lo que esperan los validadores externos.
"""

# Namespaces
DS_NS = "http://www.w3.org/2000/09/xmldsig#"
DS_PREFIX = "ds"

# Algoritmos
C14N_ALGORITHM = "http://www.w3.org/TR/2001/REC-xml-c14n-20010315"
SIGNATURE_ALGORITHM = "http://www.w3.org/2000/09/xmldsig#rsa-sha1"
ENVELOPED_SIGNATURE_TRANSFORM = "http://www.w3.org/2000/09/xmldsig#enveloped-signature"
DIGEST_ALGORITHM = "http://www.w3.org/2001/04/xmlenc#sha256"

# Orden fijo: enveloped-signature y luego c14n
TRANSFORMS = (ENVELOPED_SIGNATURE_TRANSFORM, C14N_ALGORITHM)

SIGNATURE_ID = "SignatureSP"

# Elementos buscados por local-name (el prefijo se ignora)
ANCHOR_LOCAL_NAME = "ExtensionContent"
SIGNED_CONTENT_LOCAL_NAME = "Invoice"

ANCHOR_XPATH = f"//*[local-name()='{ANCHOR_LOCAL_NAME}']"
SIGNED_CONTENT_XPATH = f"//*[local-name()='{SIGNED_CONTENT_LOCAL_NAME}']"

KEYSTORE_EXTENSIONS = (".pfx", ".p12")
