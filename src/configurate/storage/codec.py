"""
Document codecs for the supported storage formats.

Formats:
    json    Indented UTF-8 JSON.
    yaml    Block-style YAML via PyYAML's safe dumper and loader.
    binary  Plain binary: an 8-byte little-endian length followed by compact
            UTF-8 JSON of exactly that length. The layout is the one bincode
            uses for a byte vector, so files stay interchangeable with other
            readers of that format.
    binary + key
            Encrypted binary: the plain-binary encoding sealed with
            XChaCha20-Poly1305. On disk: nonce(24) || ciphertext || tag(16).

Security Design:
    - The 32-byte cipher key is SHA-256 of the caller's key material, so a
      high-entropy random string (e.g. one kept in the OS keyring) is the
      intended input
    - A fresh nonce is drawn from the OS CSPRNG on every encode
    - The Poly1305 tag authenticates the whole ciphertext; any tampering,
      truncation or wrong key fails with DecryptionError and no plaintext
      is ever returned

The codecs never guess a format; the caller always declares it.
"""

from __future__ import annotations

import json
import logging
import secrets
import struct
from enum import Enum
from typing import Any

import yaml
from cryptography.hazmat.primitives import hashes
from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_ABYTES,
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
    crypto_aead_xchacha20poly1305_ietf_NPUBBYTES,
)
from nacl.exceptions import CryptoError

from configurate.errors import (
    CodecError,
    ConfigurationError,
    DecryptionError,
    FormatMismatchError,
)

logger = logging.getLogger(__name__)

NONCE_LENGTH = crypto_aead_xchacha20poly1305_ietf_NPUBBYTES  # 24 bytes
TAG_LENGTH = crypto_aead_xchacha20poly1305_ietf_ABYTES  # 16 bytes
KEY_LENGTH = 32
LENGTH_PREFIX = struct.Struct("<Q")


class StorageFormat(str, Enum):
    """Supported on-disk storage formats."""

    JSON = "json"
    YAML = "yaml"
    BINARY = "binary"

    @classmethod
    def parse(cls, value: str | StorageFormat) -> StorageFormat:
        """Parse a format name, raising ConfigurationError for unknown names."""
        try:
            return cls(value)
        except ValueError as e:
            valid = ", ".join(f.value for f in cls)
            raise ConfigurationError(
                f"Unknown storage format: {value!r}. Must be one of: {valid}"
            ) from e


class JsonCodec:
    """Human-readable JSON codec."""

    extension = "json"

    def encode(self, document: Any) -> bytes:
        try:
            return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise CodecError(f"Cannot encode document as JSON: {e}") from e

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CodecError(f"Invalid JSON document: {e}") from e


class YamlCodec:
    """Human-readable YAML codec."""

    extension = "yaml"

    def encode(self, document: Any) -> bytes:
        try:
            text = yaml.safe_dump(
                document,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
        except yaml.YAMLError as e:
            raise CodecError(f"Cannot encode document as YAML: {e}") from e
        return text.encode("utf-8")

    def decode(self, data: bytes) -> Any:
        try:
            document = yaml.safe_load(data.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            raise CodecError(f"Invalid YAML document: {e}") from e
        return {} if document is None else document


class BinaryCodec:
    """
    Plain binary codec (not encrypted).

    Layout: ``u64 little-endian length || compact UTF-8 JSON``.
    """

    extension = "bin"

    def encode(self, document: Any) -> bytes:
        try:
            body = json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise CodecError(f"Cannot encode document as binary: {e}") from e
        return LENGTH_PREFIX.pack(len(body)) + body

    def decode(self, data: bytes) -> Any:
        if len(data) < LENGTH_PREFIX.size:
            raise FormatMismatchError(
                "Binary data is too short to hold a length prefix; "
                "is this an encrypted file read without its key?"
            )
        (length,) = LENGTH_PREFIX.unpack_from(data)
        body = data[LENGTH_PREFIX.size :]
        if length != len(body):
            raise FormatMismatchError(
                f"Binary length prefix says {length} bytes but {len(body)} follow; "
                "is this an encrypted file read without its key?"
            )
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CodecError(f"Invalid binary document: {e}") from e


class EncryptedBinaryCodec:
    """
    Authenticated-encrypted binary codec (XChaCha20-Poly1305).

    Usage:
        codec = EncryptedBinaryCodec("my-random-key")
        blob = codec.encode({"token": "abc"})
        assert codec.decode(blob) == {"token": "abc"}
    """

    extension = "binc"

    def __init__(self, key_material: str) -> None:
        """
        Initialize the codec.

        Args:
            key_material: Caller-supplied key string; hashed with SHA-256
                          to obtain the cipher key.
        """
        self._key = derive_key(key_material)
        self._binary = BinaryCodec()

    def encode(self, document: Any) -> bytes:
        plaintext = self._binary.encode(document)
        nonce = secrets.token_bytes(NONCE_LENGTH)
        sealed = crypto_aead_xchacha20poly1305_ietf_encrypt(plaintext, None, nonce, self._key)
        return nonce + sealed

    def decode(self, data: bytes) -> Any:
        if len(data) < NONCE_LENGTH + TAG_LENGTH:
            raise DecryptionError("Encrypted data is too short (missing nonce or tag)")
        nonce, sealed = data[:NONCE_LENGTH], data[NONCE_LENGTH:]
        try:
            plaintext = crypto_aead_xchacha20poly1305_ietf_decrypt(sealed, None, nonce, self._key)
        except CryptoError as e:
            logger.debug(f"Authentication failed for {len(data)}-byte encrypted payload")
            raise DecryptionError("Decryption failed: wrong key or corrupted data") from e
        return self._binary.decode(plaintext)


Codec = JsonCodec | YamlCodec | BinaryCodec | EncryptedBinaryCodec


def derive_key(key_material: str) -> bytes:
    """Derive the 32-byte cipher key as SHA-256 of the UTF-8 key material."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(key_material.encode("utf-8"))
    return digest.finalize()


def codec_for(fmt: StorageFormat | str, encryption_key: str | None = None) -> Codec:
    """
    Return the codec for a format.

    Args:
        fmt: Storage format.
        encryption_key: Key material; only valid with the binary format.

    Raises:
        ConfigurationError: If the format is unknown or a key is given for
            a non-binary format.
    """
    fmt = StorageFormat.parse(fmt)
    if encryption_key is not None and fmt != StorageFormat.BINARY:
        raise ConfigurationError(
            f'encryptionKey is only supported with format "binary", got "{fmt.value}"'
        )
    if fmt == StorageFormat.JSON:
        return JsonCodec()
    if fmt == StorageFormat.YAML:
        return YamlCodec()
    if encryption_key is not None:
        return EncryptedBinaryCodec(encryption_key)
    return BinaryCodec()


def encode(document: Any, fmt: StorageFormat | str, key: str | None = None) -> bytes:
    """Encode a document in the given format."""
    return codec_for(fmt, key).encode(document)


def decode(data: bytes, fmt: StorageFormat | str, key: str | None = None) -> Any:
    """Decode a document from the given format."""
    return codec_for(fmt, key).decode(data)
