"""
Storage layer: path resolution, document codecs and atomic file access.

Storage Structure:
    {base root}/{identifier or dirName}/{path...}/{name}

    name.json   JSON document
    name.yaml   YAML document
    name.bin    plain binary document (length-prefixed compact JSON)
    name.binc   encrypted binary document (XChaCha20-Poly1305)

Usage:
    from configurate.storage import DirectoryResolver, StorageLocation, codec_for

    resolver = DirectoryResolver("com.example.app")
    path = resolver.resolve(StorageLocation(BaseDirectory.APP_CONFIG, "app.json"))
    document = codec_for("json").decode(path.read_bytes())
"""

from configurate.storage.codec import (
    BinaryCodec,
    EncryptedBinaryCodec,
    JsonCodec,
    StorageFormat,
    YamlCodec,
    codec_for,
    decode,
    derive_key,
    encode,
)
from configurate.storage.files import read_file, remove_file, write_file_safely
from configurate.storage.paths import (
    BaseDirectory,
    DirectoryResolver,
    StorageLocation,
    validate_component,
)

__all__ = [
    # Paths
    "BaseDirectory",
    "DirectoryResolver",
    "StorageLocation",
    "validate_component",
    # Codecs
    "StorageFormat",
    "JsonCodec",
    "YamlCodec",
    "BinaryCodec",
    "EncryptedBinaryCodec",
    "codec_for",
    "encode",
    "decode",
    "derive_key",
    # Files
    "read_file",
    "remove_file",
    "write_file_safely",
]
