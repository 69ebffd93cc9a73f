"""
Errores del orchestrator MXPaylink.

Las funciones del núcleo (cifrado, credenciales, teléfonos) lanzan estas
excepciones internamente y las convierten en ``None`` en su frontera pública.
Solo ``ConfigurationError`` al arrancar es fatal.
"""


class PaylinkError(Exception):
    """Base de todos los errores del dominio."""


class ConfigurationError(PaylinkError):
    """ENCRYPTION_KEY ausente o con longitud distinta de 32 bytes."""


class EncryptionError(PaylinkError):
    pass


class EncryptionFailed(EncryptionError):
    pass


class MalformedEnvelope(EncryptionError):
    """El valor no tiene la forma ``<iv hex>:<ciphertext hex>``."""


class DecryptionFailed(EncryptionError):
    """Clave incorrecta, ciphertext corrupto o padding inválido."""


class CredentialError(PaylinkError):
    pass


class UnrecognizedCredentialShape(CredentialError):
    """Ni cadena cifrada (legacy) ni objeto ``{"encrypted": ...}``."""


class UnparsableCredentialContent(CredentialError):
    """Descifrado correcto pero ni JSON válido ni ``client_id:secret``."""


class InvalidPhoneFormat(PaylinkError):
    def __init__(self, reason: str, raw_length: int = 0):
        super().__init__(reason)
        self.reason = reason
        self.raw_length = raw_length


class PayPalError(PaylinkError):
    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code
