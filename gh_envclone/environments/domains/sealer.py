"""Sealed-box encryption of secret values for GitHub's secrets API."""
import base64
import binascii
import logging
from typing import Union

from .errors import EncryptionUnavailable, InvalidPublicKey

logger = logging.getLogger(__name__)

PUBLIC_KEY_SIZE = 32


def _load_nacl():
    """
    Import the PyNaCl sealed-box primitives.

    Returns:
        Tuple of (PublicKey, SealedBox) classes

    Raises:
        EncryptionUnavailable: If PyNaCl cannot be imported
    """
    try:
        from nacl.public import PublicKey, SealedBox
    except ImportError as e:
        raise EncryptionUnavailable(
            f"PyNaCl is not available ({e}). Install it with: pip install pynacl"
        ) from e
    return PublicKey, SealedBox


def decode_public_key(public_key: str) -> bytes:
    """
    Decode a base64 recipient public key.

    Raises:
        InvalidPublicKey: If the key is not base64 or not exactly 32 bytes
    """
    try:
        key_bytes = base64.b64decode(public_key, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise InvalidPublicKey(f"Public key is not valid base64: {e}") from e

    if len(key_bytes) != PUBLIC_KEY_SIZE:
        raise InvalidPublicKey(
            f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(key_bytes)}"
        )
    return key_bytes


def seal_secret(public_key: str, plaintext: Union[str, bytes]) -> str:
    """
    Encrypt a secret value with an anonymous sealed box.

    Every call generates a fresh ephemeral key pair, so sealing the same
    value twice yields different ciphertexts. Only the holder of the private
    key matching public_key can open the result.

    Args:
        public_key: Base64-encoded 32-byte recipient public key
        plaintext: Secret value (may be empty)

    Returns:
        Base64-encoded ciphertext

    Raises:
        InvalidPublicKey: If the key is malformed
        EncryptionUnavailable: If PyNaCl cannot be loaded
    """
    key_bytes = decode_public_key(public_key)
    PublicKey, SealedBox = _load_nacl()

    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    box = SealedBox(PublicKey(key_bytes))
    encrypted = box.encrypt(plaintext)
    return base64.b64encode(encrypted).decode("ascii")
