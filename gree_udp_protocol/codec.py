#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
The envelope codec used for the encrypted "pack" field of Gree messages.

A pack is a JSON document, padded with PKCS7 to a 16-byte boundary, encrypted with
AES-128 in ECB mode, and base64-encoded. Unbound devices use GENERIC_KEY; bound devices
use the per-device key returned by the bind handshake.
"""

from __future__ import annotations

import base64
import binascii

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .internal_types import *
from .exceptions import CryptoError

BLOCK_SIZE = 16
"""The AES block size, in bytes."""

KeyLike = Union[str, bytes]

def _key_bytes(key: KeyLike) -> bytes:
    if isinstance(key, str):
        key = key.encode('utf-8')
    if len(key) != BLOCK_SIZE:
        raise CryptoError(f"AES-128 key must be {BLOCK_SIZE} bytes, got {len(key)}")
    return key

def _cipher(key: KeyLike) -> Cipher:
    return Cipher(algorithms.AES(_key_bytes(key)), modes.ECB())

def pkcs7_pad(payload: bytes, block_size: int=BLOCK_SIZE) -> bytes:
    """Pads payload to a multiple of block_size. A full block of padding is added
       if the payload is already aligned."""
    pad_len = block_size - (len(payload) % block_size)
    return payload + bytes([pad_len]) * pad_len

def pkcs7_unpad(payload: bytes, block_size: int=BLOCK_SIZE) -> bytes:
    """Removes PKCS7 padding by trusting the trailing length byte.

       The length byte must be in 1..block_size and may not exceed the payload length;
       the other padding bytes are not inspected.
    """
    if len(payload) == 0:
        return payload
    pad_len = payload[-1]
    if pad_len < 1 or pad_len > block_size or pad_len > len(payload):
        raise CryptoError(f"Invalid PKCS7 padding length {pad_len}")
    return payload[:-pad_len]

def encode(plaintext: Union[str, bytes], key: KeyLike) -> str:
    """Pads, encrypts and base64-encodes plaintext with an AES-128 key."""
    if isinstance(plaintext, str):
        plaintext = plaintext.encode('utf-8')
    encryptor = _cipher(key).encryptor()
    ciphertext = encryptor.update(pkcs7_pad(plaintext)) + encryptor.finalize()
    return base64.b64encode(ciphertext).decode('ascii')

def decode(pack: Union[str, bytes], key: KeyLike) -> str:
    """Base64-decodes, decrypts and unpads a pack. The result is decoded as UTF-8,
       replacing undecodable bytes.

       Raises CryptoError if the pack is not valid base64 or its length is not
       a multiple of the block size.
    """
    try:
        ciphertext = base64.b64decode(pack, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Invalid base64 in pack: {e}") from e
    if len(ciphertext) % BLOCK_SIZE != 0:
        raise CryptoError(f"Ciphertext length {len(ciphertext)} is not a multiple of {BLOCK_SIZE}")
    decryptor = _cipher(key).decryptor()
    plaintext = decryptor.update(ciphertext) + decryptor.finalize()
    return pkcs7_unpad(plaintext).decode('utf-8', errors='replace')
