# Copyright 2021-2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License")
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# Crypto support
#
# See Exposure Notification - Cryptography Specification v1.2
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# Imports
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import Protocol

from exposure.core import AES_BLOCK_SIZE, check_size
from exposure.crypto.cryptography import AesEcbEncryptor, aes_ctr, hkdf_sha256

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Classes
# -----------------------------------------------------------------------------
class BlockEncryptor(Protocol):
    def encrypt(self, data: bytes) -> bytes: ...


class SymmetricPrimitives(Protocol):
    '''
    The cipher and key derivation capabilities needed by the key schedule, the
    identifier generator and the metadata engine.

    Every method is a pure function of its arguments. Failures are reported as
    `exposure.core.CryptoError`.
    '''

    def derive_key(self, secret: bytes, info: bytes, length: int) -> bytes: ...

    def block_encryptor(self, key: bytes) -> BlockEncryptor: ...

    def keystream_transform(self, key: bytes, nonce: bytes, data: bytes) -> bytes: ...


class CryptographyPrimitives:
    '''
    `SymmetricPrimitives` backed by the `cryptography` package.
    '''

    def derive_key(self, secret: bytes, info: bytes, length: int) -> bytes:
        return derive_key(secret, info, length)

    def block_encryptor(self, key: bytes) -> BlockEncryptor:
        return AesEcbEncryptor(key)

    def keystream_transform(self, key: bytes, nonce: bytes, data: bytes) -> bytes:
        return keystream_transform(key, nonce, data)


# -----------------------------------------------------------------------------
# Functions
# -----------------------------------------------------------------------------


# -----------------------------------------------------------------------------
def derive_key(secret: bytes, info: bytes, length: int) -> bytes:
    '''
    HKDF-SHA256(secret, salt=NULL, info, length)

    See EN Cryptography Specification - Rolling Proximity Identifier Key /
    Associated Encrypted Metadata Key
    '''
    return hkdf_sha256(secret, None, info, length)


# -----------------------------------------------------------------------------
def encrypt_block_ecb(key: bytes, plaintext: bytes) -> bytes:
    '''
    AES-128 ECB on a single 16-byte block.
    '''
    check_size('plaintext', plaintext, AES_BLOCK_SIZE)
    return AesEcbEncryptor(key).encrypt(plaintext)


# -----------------------------------------------------------------------------
def keystream_transform(key: bytes, nonce: bytes, data: bytes) -> bytes:
    '''
    AES-128 CTR keyed by `key`, with `nonce` as the initial counter block.

    The transform is its own inverse, so the same call encrypts and decrypts.
    '''
    check_size('nonce', nonce, AES_BLOCK_SIZE)
    return aes_ctr(key, nonce, data)
