class UserCryptoError(Exception):
    pass


class KeyConfigurationError(UserCryptoError):
    """The private key cannot be used at all. Fatal for every decryption."""


class MalformedKeyError(KeyConfigurationError):
    pass


class KeyImportError(KeyConfigurationError):
    pass


class FieldDecryptionError(UserCryptoError):
    """A single field could not be recovered. Sibling fields are unaffected."""


class InvalidEncodingError(FieldDecryptionError):
    pass


class DecryptionError(FieldDecryptionError):
    pass


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
