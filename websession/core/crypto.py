"""
Cookie value encryption.

Authenticated symmetric encryption (AES-256-GCM) of the session pointer that
travels inside the cookie. The wire format is
``base64(nonce[12] || ciphertext || tag[16])`` using the standard base64
alphabet.

Two key derivation modes are supported:

- ``"raw"``: the UTF-8 bytes of the first 32 characters of the secret are the
  key. No key stretching; kept for compatibility with cookies issued by
  existing deployments.
- ``"hkdf"``: HKDF-SHA256 over the whole secret. Preferred for new
  deployments.
"""

import base64
import binascii
import logging
import os
from functools import lru_cache

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from websession.core.exceptions import ConfigurationError, CryptoError

logger = logging.getLogger(__name__)


MIN_SECRET_LENGTH = 32
KEY_LENGTH_BYTES = 32
NONCE_LENGTH_BYTES = 12
TAG_LENGTH_BYTES = 16

KEY_DERIVATION_MODES = ("raw", "hkdf")
_HKDF_INFO = b"websession cookie encryption key"


def _derive_key_material(secret: str, key_derivation: str) -> bytes:
    if key_derivation == "raw":
        material = secret[:MIN_SECRET_LENGTH].encode("utf-8")
        if len(material) != KEY_LENGTH_BYTES:
            raise ConfigurationError(
                "Secret must start with 32 single-byte characters when "
                "key_derivation='raw'; use key_derivation='hkdf' instead",
                setting="secret",
            )
        return material

    if key_derivation == "hkdf":
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH_BYTES,
            salt=None,
            info=_HKDF_INFO,
        )
        return hkdf.derive(secret.encode("utf-8"))

    raise ConfigurationError(
        f"Unknown key derivation mode: {key_derivation!r} "
        f"(expected one of {KEY_DERIVATION_MODES})",
        setting="key_derivation",
    )


@lru_cache(maxsize=32)
def import_key(secret: str, key_derivation: str = "raw") -> AESGCM:
    """
    Derive the AES-256-GCM key for a secret.

    Deterministic: the same secret and mode always yield the same key.
    Results are cached, so the derivation runs once per configuration no
    matter how many per-request managers share it.

    Args:
        secret: Caller-supplied secret, at least 32 characters.
        key_derivation: ``"raw"`` or ``"hkdf"``.

    Returns:
        AESGCM: Cipher bound to the derived key.

    Raises:
        ConfigurationError: If the secret is shorter than 32 characters or
            the derivation mode is unknown.
    """
    if secret is None or len(secret) < MIN_SECRET_LENGTH:
        raise ConfigurationError(
            f"Secret must be at least {MIN_SECRET_LENGTH} characters long",
            setting="secret",
        )

    key = AESGCM(_derive_key_material(secret, key_derivation))
    logger.debug("Derived cookie encryption key (mode=%s)", key_derivation)
    return key


def encrypt(plaintext: str, key: AESGCM) -> str:
    """
    Encrypt a string for the session cookie.

    A fresh random 96-bit nonce is drawn on every call, so encrypting the
    same plaintext twice gives two different outputs.

    Args:
        plaintext: Text to encrypt (may be empty).
        key: Cipher returned by import_key().

    Returns:
        Base64 text of nonce || ciphertext || tag.
    """
    nonce = os.urandom(NONCE_LENGTH_BYTES)
    ciphertext = key.encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + ciphertext).decode("ascii")


def decrypt(encoded: str, key: AESGCM) -> str:
    """
    Decrypt a value produced by encrypt().

    Args:
        encoded: Base64 text of nonce || ciphertext || tag.
        key: Cipher returned by import_key().

    Returns:
        The original plaintext.

    Raises:
        CryptoError: On malformed base64, a truncated payload, a wrong key,
            tampered ciphertext, or a plaintext that is not UTF-8.
    """
    try:
        combined = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise CryptoError(f"Malformed encrypted value: {e}") from e

    if len(combined) < NONCE_LENGTH_BYTES + TAG_LENGTH_BYTES:
        raise CryptoError("Encrypted value is too short")

    nonce, ciphertext = combined[:NONCE_LENGTH_BYTES], combined[NONCE_LENGTH_BYTES:]
    try:
        plaintext = key.decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise CryptoError("Authentication tag mismatch") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CryptoError("Decrypted value is not valid UTF-8") from e
