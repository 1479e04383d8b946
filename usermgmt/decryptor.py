import asyncio
import binascii
import logging

from typing import Iterable, List, Tuple

from usermgmt.constants import CONFIDENTIAL_FIELDS, UNDECRYPTABLE
from usermgmt.errors import DecryptionError, FieldDecryptionError, InvalidEncodingError
from usermgmt.keys import KeyHandle, SharedKeyHandle
from usermgmt.models import DecryptedUsers, EncryptedRecord, FieldFailure, PlaintextRecord
from usermgmt.utils import b64decode_strict


def decrypt_field(ciphertext_b64: str, key: KeyHandle) -> str:
    """
    Decodes a base64 ciphertext, decrypts it with the key handle and returns
    the plaintext as UTF-8 text.
    """
    if not isinstance(ciphertext_b64, str):
        raise InvalidEncodingError(f"Ciphertext is missing or not a string: {type(ciphertext_b64).__name__}")

    try:
        ciphertext = b64decode_strict(ciphertext_b64)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise InvalidEncodingError(f"Ciphertext is not valid base64: {e}") from e

    try:
        plaintext = key.decrypt(ciphertext)
    except ValueError as e:
        raise DecryptionError("Decryption failed") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEncodingError("Decrypted bytes are not valid UTF-8") from e


async def decrypt_field_async(ciphertext_b64: str, key: KeyHandle) -> str:
    # RSA private key operations block; keep them off the event loop
    return await asyncio.to_thread(decrypt_field, ciphertext_b64, key)


class RecordDecryptor:
    """
    Decrypts every confidential field of a list of user records.

    Fields that fail are replaced by UNDECRYPTABLE and reported as a
    FieldFailure; the record itself is kept in place. Key errors are not
    caught here and abort the whole batch.
    """

    def __init__(self, key: SharedKeyHandle):
        self.key = key

    async def decrypt_record(self, record: EncryptedRecord, index: int = 0) -> Tuple[PlaintextRecord, List[FieldFailure]]:
        return await self._decrypt_record(self.key.get(), index, record)

    async def decrypt_records(self, records: Iterable[EncryptedRecord | dict]) -> DecryptedUsers:
        key = self.key.get()
        records = [EncryptedRecord.from_payload(r) for r in records]

        results = await asyncio.gather(
            *(self._decrypt_record(key, index, record) for index, record in enumerate(records))
        )

        decrypted = DecryptedUsers()
        for record, failures in results:
            decrypted.records.append(record)
            decrypted.failures.extend(failures)

        if decrypted.failures:
            logging.warning(
                f"{len(decrypted.failures)} field(s) could not be decrypted across {len(records)} record(s)"
            )
        return decrypted

    async def _decrypt_record(self, key: KeyHandle, index: int, record: EncryptedRecord):
        values = await asyncio.gather(
            *(self._decrypt_field(key, index, field, getattr(record, field)) for field in CONFIDENTIAL_FIELDS)
        )

        data = record.model_dump()
        failures = []
        for field, (value, failure) in zip(CONFIDENTIAL_FIELDS, values):
            data[field] = value
            if failure is not None:
                failures.append(failure)

        return PlaintextRecord(**data), failures

    async def _decrypt_field(self, key: KeyHandle, index: int, field: str, value: str):
        try:
            return await decrypt_field_async(value, key), None
        except FieldDecryptionError as e:
            logging.warning(f"Record {index} field '{field}': {type(e).__name__}: {e}")
            failure = FieldFailure(index=index, field=field, error=type(e).__name__, message=str(e))
            return UNDECRYPTABLE, failure
