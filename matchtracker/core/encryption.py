"""Field-level encryption for PII stored at rest.

Values are encrypted with AES-256-GCM under a key derived from the
configured ``ENCRYPTION_KEY`` with PBKDF2-HMAC-SHA256. Every call draws a
fresh salt and IV, so encrypting the same plaintext twice yields different
output. The encoded form is::

    base64(salt[64] || iv[16] || tag[16] || ciphertext)
"""

import base64
import binascii
import os
from collections.abc import Iterable, Mapping
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from matchtracker.core.config import get_settings
from matchtracker.core.exceptions import ConfigurationError, IntegrityError

SALT_LENGTH = 64
IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
ITERATIONS = 100_000

HEADER_LENGTH = SALT_LENGTH + IV_LENGTH + TAG_LENGTH

# Encrypted columns per record type
USER_PII_FIELDS = ("email", "name")
TEAM_PII_FIELDS = ("name",)
PLAYER_PII_FIELDS = ("name",)

PII_FIELDS = {
    "user": USER_PII_FIELDS,
    "team": TEAM_PII_FIELDS,
    "player": PLAYER_PII_FIELDS,
}


def _secret() -> str:
    secret = get_settings().ENCRYPTION_KEY
    if not secret:
        raise ConfigurationError("ENCRYPTION_KEY environment variable is not set")
    return secret


def derive_key(secret: str, salt: bytes) -> bytes:
    """Derive the AES key for one value from the secret and its salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=ITERATIONS,
    )
    return kdf.derive(secret.encode("utf-8"))


def encrypt(plaintext: str | None) -> str | None:
    """Encrypt a string value.

    Empty and ``None`` values are returned unchanged.

    Raises:
        ConfigurationError: if no encryption secret is configured.
    """
    if not plaintext:
        return plaintext

    secret = _secret()
    salt = os.urandom(SALT_LENGTH)
    iv = os.urandom(IV_LENGTH)
    key = derive_key(secret, salt)

    # AESGCM appends the tag to the ciphertext; the stored layout puts it first
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

    return base64.b64encode(salt + iv + tag + ciphertext).decode("ascii")


def decrypt(value: str | None) -> str | None:
    """Decrypt a value produced by :func:`encrypt`.

    Empty and ``None`` values are returned unchanged.

    Raises:
        ConfigurationError: if no encryption secret is configured.
        IntegrityError: if the value is malformed, was tampered with, or was
            encrypted under a different secret.
    """
    if not value:
        return value

    secret = _secret()
    try:
        combined = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise IntegrityError("Encrypted value is not valid base64") from err

    if len(combined) < HEADER_LENGTH:
        raise IntegrityError("Encrypted value is too short")

    salt = combined[:SALT_LENGTH]
    iv = combined[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
    tag = combined[SALT_LENGTH + IV_LENGTH:HEADER_LENGTH]
    ciphertext = combined[HEADER_LENGTH:]

    key = derive_key(secret, salt)
    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as err:
        raise IntegrityError("Encrypted value failed authentication") from err

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as err:
        raise IntegrityError("Decrypted value is not valid UTF-8") from err


def encrypt_fields(record: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Return a copy of ``record`` with the named fields encrypted."""
    result = dict(record)
    for field in fields:
        if result.get(field):
            result[field] = encrypt(result[field])
    return result


def decrypt_fields(record: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Return a copy of ``record`` with the named fields decrypted."""
    result = dict(record)
    for field in fields:
        if result.get(field):
            result[field] = decrypt(result[field])
    return result


def encrypt_records(records: Iterable[Mapping[str, Any]], fields: Iterable[str]) -> list[dict[str, Any]]:
    fields = tuple(fields)
    return [encrypt_fields(record, fields) for record in records]


def decrypt_records(records: Iterable[Mapping[str, Any]], fields: Iterable[str]) -> list[dict[str, Any]]:
    fields = tuple(fields)
    return [decrypt_fields(record, fields) for record in records]
