"""
Excepciones del firmador XMLDSig de facturas.

Todas son fatales para la operación en curso: no hay salida parcial ni
reintentos internos.
"""


class InvoiceSignerError(Exception):
    """Excepción base para errores del firmador"""
    pass


class InputError(InvoiceSignerError):
    """Ruta o extensión de keystore inválida, o archivo inexistente"""
    pass


class StructureError(InvoiceSignerError):
    """El XML no se puede parsear o le falta ExtensionContent / Invoice"""
    pass


class KeystoreError(InvoiceSignerError):
    """Contraseña incorrecta, contenedor PKCS#12 mal formado o sin clave/certificado"""
    pass


class SigningError(InvoiceSignerError):
    """Falla de canonicalización o de la primitiva criptográfica"""
    pass
