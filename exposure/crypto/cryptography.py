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

from __future__ import annotations

from cryptography import exceptions
from cryptography.hazmat.primitives import ciphers, hashes
from cryptography.hazmat.primitives.ciphers import algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from exposure.core import CryptoError


def hkdf_sha256(ikm: bytes, salt: bytes | None, info: bytes, length: int) -> bytes:
    '''
    HKDF (RFC 5869) with SHA-256.

    A missing or empty salt is replaced by HashLen zero bytes.
    '''
    try:
        return HKDF(
            algorithm=hashes.SHA256(), length=length, salt=salt or None, info=info
        ).derive(ikm)
    except (ValueError, TypeError, exceptions.UnsupportedAlgorithm) as error:
        raise CryptoError(f'HKDF-SHA256 failed: {error}') from error


def aes_ctr(key: bytes, nonce: bytes, data: bytes) -> bytes:
    '''
    AES-CTR with a 16-byte initial counter block. Encryption and decryption are the
    same operation.
    '''
    try:
        encryptor = ciphers.Cipher(algorithms.AES(key), modes.CTR(nonce)).encryptor()
        return encryptor.update(data) + encryptor.finalize()
    except (ValueError, TypeError, exceptions.UnsupportedAlgorithm) as error:
        raise CryptoError(f'AES-CTR failed: {error}') from error


class AesEcbEncryptor:
    '''
    AES-ECB without padding, keyed once and reused for many encryptions.

    The key schedule is set up once; each call gets its own encryptor context so
    a single instance can be shared between threads.
    '''

    def __init__(self, key: bytes) -> None:
        try:
            self.cipher = ciphers.Cipher(algorithms.AES(key), modes.ECB())
        except (ValueError, TypeError, exceptions.UnsupportedAlgorithm) as error:
            raise CryptoError(f'AES key setup failed: {error}') from error

    def encrypt(self, data: bytes) -> bytes:
        '''
        Encrypts one or more whole 16-byte blocks.
        '''
        try:
            encryptor = self.cipher.encryptor()
            return encryptor.update(data) + encryptor.finalize()
        except (ValueError, exceptions.UnsupportedAlgorithm) as error:
            raise CryptoError(f'AES-ECB failed: {error}') from error
