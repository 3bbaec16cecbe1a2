# Copyright 2021-2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
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
# Imports
# -----------------------------------------------------------------------------
import pytest

from exposure import crypto
from exposure.core import CryptoError, InvalidArgumentError
from exposure.crypto.cryptography import AesEcbEncryptor, aes_ctr, hkdf_sha256

from .vectors import AEMK, BLE_METADATA, RPIK, TEMPORARY_TRACING_KEY


# -----------------------------------------------------------------------------
def test_hkdf_rfc5869():
    # RFC 5869, A.3 (zero-length salt and info)
    ikm = bytes.fromhex('0b' * 22)
    okm = hkdf_sha256(ikm, None, b'', 42)
    assert okm == bytes.fromhex(
        '8da4e775a563c18f715f802a063c5a31'
        'b8a11f5c5ee1879ec3454e5f3c738d2d'
        '9d201395faa4b61a96c8'
    )
    assert hkdf_sha256(ikm, b'', b'', 42) == okm


# -----------------------------------------------------------------------------
def test_derive_key():
    assert crypto.derive_key(TEMPORARY_TRACING_KEY, b'EN-RPIK', 16) == RPIK
    assert crypto.derive_key(TEMPORARY_TRACING_KEY, b'EN-AEMK', 16) == AEMK


# -----------------------------------------------------------------------------
def test_derive_key_invalid_length():
    with pytest.raises(CryptoError):
        crypto.derive_key(TEMPORARY_TRACING_KEY, b'EN-RPIK', 255 * 32 + 1)


# -----------------------------------------------------------------------------
def test_encrypt_block_ecb():
    # FIPS-197, Appendix C.1
    key = bytes.fromhex('000102030405060708090a0b0c0d0e0f')
    plaintext = bytes.fromhex('00112233445566778899aabbccddeeff')
    assert crypto.encrypt_block_ecb(key, plaintext) == bytes.fromhex(
        '69c4e0d86a7b0430d8cdb78070b4c55a'
    )


# -----------------------------------------------------------------------------
def test_encrypt_block_ecb_invalid_sizes():
    with pytest.raises(InvalidArgumentError):
        crypto.encrypt_block_ecb(RPIK, bytes(15))
    with pytest.raises(CryptoError):
        crypto.encrypt_block_ecb(bytes(15), bytes(16))


# -----------------------------------------------------------------------------
def test_aes_ecb_encryptor_multiple_blocks():
    encryptor = AesEcbEncryptor(RPIK)
    block1 = encryptor.encrypt(bytes(16))
    block2 = encryptor.encrypt(bytes(range(16)))
    assert encryptor.encrypt(bytes(16) + bytes(range(16))) == block1 + block2

    with pytest.raises(CryptoError):
        encryptor.encrypt(bytes(17))


# -----------------------------------------------------------------------------
def test_keystream_transform():
    nonce = bytes.fromhex('aabbccddeeff00112233445566778899')
    encrypted = crypto.keystream_transform(AEMK, nonce, BLE_METADATA)
    assert len(encrypted) == len(BLE_METADATA)
    assert encrypted != BLE_METADATA
    assert crypto.keystream_transform(AEMK, nonce, encrypted) == BLE_METADATA
    assert aes_ctr(AEMK, nonce, BLE_METADATA) == encrypted


# -----------------------------------------------------------------------------
def test_keystream_transform_invalid_arguments():
    with pytest.raises(InvalidArgumentError):
        crypto.keystream_transform(AEMK, bytes(8), BLE_METADATA)
    with pytest.raises(CryptoError):
        crypto.keystream_transform(bytes(5), bytes(16), BLE_METADATA)


# -----------------------------------------------------------------------------
def test_cryptography_primitives():
    primitives = crypto.CryptographyPrimitives()
    assert primitives.derive_key(TEMPORARY_TRACING_KEY, b'EN-RPIK', 16) == RPIK
    assert primitives.block_encryptor(RPIK).encrypt(bytes(16)) == (
        crypto.encrypt_block_ecb(RPIK, bytes(16))
    )
    nonce = bytes(16)
    assert primitives.keystream_transform(AEMK, nonce, BLE_METADATA) == (
        crypto.keystream_transform(AEMK, nonce, BLE_METADATA)
    )
