import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import BaseModel, ConfigDict

from usermgmt.constants import DEFAULT_DIGEST, DEFAULT_SCHEME
from usermgmt.errors import KeyConfigurationError, KeyImportError
from usermgmt.utils import pem_to_der

DIGESTS = {
    "SHA-1": hashes.SHA1,
    "SHA-256": hashes.SHA256,
    "SHA-384": hashes.SHA384,
    "SHA-512": hashes.SHA512,
}

SCHEMES = ("RSA-OAEP",)


class AlgorithmProfile(BaseModel):
    """The algorithm an imported key is bound to, e.g. RSA-OAEP with SHA-256."""

    model_config = ConfigDict(frozen=True)

    scheme: str = DEFAULT_SCHEME
    digest: str = DEFAULT_DIGEST

    def oaep_padding(self) -> padding.OAEP:
        if self.scheme.upper() not in SCHEMES:
            raise KeyImportError(f"Unsupported key scheme: {self.scheme}")

        digest = DIGESTS.get(self.digest.upper())
        if digest is None:
            raise KeyImportError(f"Unsupported digest: {self.digest}")

        # Same parameters as Web Crypto RSA-OAEP: MGF1 over the same hash, no label
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=digest()),
            algorithm=digest(),
            label=None,
        )


DEFAULT_PROFILE = AlgorithmProfile()


class KeyHandle:
    """
    Decrypt-only capability over an RSA private key.

    The key material never leaves the handle: there is no accessor for it and
    the handle refuses to be pickled or copied.
    """

    __slots__ = ("_key", "_padding", "profile")

    def __init__(self, key: rsa.RSAPrivateKey, profile: AlgorithmProfile):
        self._key = key
        self._padding = profile.oaep_padding()
        self.profile = profile

    @property
    def key_size(self) -> int:
        return self._key.key_size

    def decrypt(self, ciphertext: bytes) -> bytes:
        return self._key.decrypt(ciphertext, self._padding)

    def __reduce__(self):
        raise TypeError("KeyHandle is not exportable")

    def __copy__(self):
        raise TypeError("KeyHandle is not exportable")

    def __deepcopy__(self, memo):
        raise TypeError("KeyHandle is not exportable")

    def __repr__(self):
        return f"<KeyHandle {self.profile.scheme}/{self.profile.digest} {self.key_size}-bit>"


def import_private_key(der: bytes, profile: AlgorithmProfile = DEFAULT_PROFILE) -> KeyHandle:
    try:
        private_key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyImportError(f"Key bytes are not a PKCS#8 private key: {e}") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyImportError(f"{profile.scheme} needs an RSA private key")

    return KeyHandle(private_key, profile)


def load_key_handle(pem: str, profile: AlgorithmProfile = DEFAULT_PROFILE) -> KeyHandle:
    return import_private_key(pem_to_der(pem), profile)


class SharedKeyHandle:
    """
    Process-wide key handle, imported on first use.

    An import failure is remembered and raised again on every later call
    instead of retrying, since the configured key cannot change underneath us.
    `close()` drops the handle.
    """

    def __init__(self, pem: str, profile: AlgorithmProfile = DEFAULT_PROFILE):
        self._pem = pem
        self.profile = profile
        self._handle: KeyHandle | None = None
        self._error: KeyConfigurationError | None = None

    @classmethod
    def from_settings(cls, settings) -> "SharedKeyHandle":
        profile = AlgorithmProfile(scheme=settings.KEY_SCHEME, digest=settings.KEY_DIGEST)
        return cls(settings.PRIVATE_KEY, profile)

    @property
    def ready(self) -> bool:
        return self._handle is not None

    def get(self) -> KeyHandle:
        if self._handle is not None:
            return self._handle
        if self._error is not None:
            raise self._error

        try:
            self._handle = load_key_handle(self._pem, self.profile)
        except KeyConfigurationError as e:
            logging.error(f"Private key is unusable: {e}")
            self._error = e
            raise

        logging.info(f"Imported private key: {self._handle!r}")
        return self._handle

    def close(self) -> None:
        self._handle = None
        self._error = None
