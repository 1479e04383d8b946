import base64
import binascii
import re

from functools import lru_cache

import usermgmt.config as config
from usermgmt.errors import MalformedKeyError

PEM_DELIMITER = re.compile(r"-----[^-]*-----")
WHITESPACE = re.compile(r"\s+")

@lru_cache
def get_settings():
    return config.Settings()

def b64decode_strict(data: str) -> bytes:
    """
    Decodes standard base64, rejecting any character outside the alphabet.
    Raises binascii.Error on bad input.
    """
    return base64.b64decode(data.encode("ascii"), validate=True)

def pem_to_der(pem: str) -> bytes:
    """
    Strips the BEGIN/END lines and all whitespace from a PEM block and
    returns the decoded key bytes.
    """
    if not pem or not pem.strip():
        raise MalformedKeyError("private key is not configured")

    # Keys pasted into a .env file often arrive with literal "\n" sequences
    body = pem.replace("\\n", "\n")
    body = PEM_DELIMITER.sub("", body)
    body = WHITESPACE.sub("", body)

    if not body:
        raise MalformedKeyError("PEM block has no base64 payload")

    try:
        return b64decode_strict(body)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise MalformedKeyError(f"PEM payload is not valid base64: {e}") from e
