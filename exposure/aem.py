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
# Associated Encrypted Metadata
#
# AEMK = HKDF(TEK, NULL, UTF8("EN-AEMK"), 16)
# AEM  = AES-128-CTR(AEMK, RPI, Metadata)
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# Imports
# -----------------------------------------------------------------------------
from __future__ import annotations

import dataclasses
import enum
import logging
import struct
import threading
from typing import Optional, Union

from exposure import crypto
from exposure.config import (
    Configuration,
    DEFAULT_METADATA_SIZE,
    DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE,
)
from exposure.core import (
    AES_BLOCK_SIZE,
    AES_KEY_SIZE,
    InvalidArgumentError,
    check_size,
)
from exposure.keys import TemporaryExposureKey


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
class CalibrationConfidence(enum.IntEnum):
    LOWEST = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


# -----------------------------------------------------------------------------
@dataclasses.dataclass(frozen=True)
class BluetoothMetadata:
    '''
    The plaintext metadata broadcast (encrypted) next to each RPI.

    Version byte:
      bits 7:6 major version
      bits 5:4 minor version
      bits 3:2 transmit power calibration confidence (v1.1)
      bits 1:0 reserved
    '''

    VERSION_1_0 = 0x40
    VERSION_1_1 = 0x50
    CALIBRATION_CONFIDENCE_BITS_OFFSET = 2
    CALIBRATION_CONFIDENCE_BITS_MASK = 0b00001100

    version: int
    tx_power: int

    @classmethod
    def create_version(
        cls,
        metadata_v1_1: bool = True,
        calibration_confidence: int = CalibrationConfidence.LOWEST,
    ) -> int:
        if not metadata_v1_1:
            return cls.VERSION_1_0
        return cls.VERSION_1_1 | (
            (calibration_confidence << cls.CALIBRATION_CONFIDENCE_BITS_OFFSET)
            & cls.CALIBRATION_CONFIDENCE_BITS_MASK
        )

    @classmethod
    def from_configuration(cls, config: Configuration) -> BluetoothMetadata:
        return cls(
            version=cls.create_version(
                config.metadata_v1_1, config.calibration_confidence
            ),
            tx_power=config.tx_power + config.tx_power_calibration,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> BluetoothMetadata:
        check_size('metadata', data, DEFAULT_METADATA_SIZE)
        version, tx_power = struct.unpack_from('<Bb', data)
        return cls(version=version, tx_power=tx_power)

    @property
    def calibration_confidence(self) -> CalibrationConfidence:
        return CalibrationConfidence(
            (self.version & self.CALIBRATION_CONFIDENCE_BITS_MASK)
            >> self.CALIBRATION_CONFIDENCE_BITS_OFFSET
        )

    def __bytes__(self) -> bytes:
        # Bytes 2 and 3 are reserved
        return struct.pack('<Bbxx', self.version & 0xFF, _to_int8(self.tx_power))


# -----------------------------------------------------------------------------
def _to_int8(value: int) -> int:
    if not -128 <= value <= 255:
        raise InvalidArgumentError(f'tx_power {value} does not fit in one byte')
    return value - 256 if value > 127 else value


# -----------------------------------------------------------------------------
class AssociatedEncryptedMetadataGenerator:
    '''
    Encrypts and decrypts the metadata of one Temporary Exposure Key.

    The AEMK is derived on first use and then kept for the lifetime of the
    instance. There is no authentication tag: decrypting with the wrong key or RPI
    returns garbage instead of failing.
    '''

    def __init__(
        self,
        temporary_exposure_key: TemporaryExposureKey,
        config: Optional[Configuration] = None,
        primitives: Optional[crypto.SymmetricPrimitives] = None,
    ) -> None:
        self.temporary_exposure_key = temporary_exposure_key
        self.config = config or Configuration()
        self.primitives = primitives or crypto.CryptographyPrimitives()
        self._aem_key: Optional[bytes] = None
        self._aem_key_lock = threading.Lock()

    @property
    def aem_key(self) -> bytes:
        if (aem_key := self._aem_key) is None:
            with self._aem_key_lock:
                if (aem_key := self._aem_key) is None:
                    aem_key = self._aem_key = self.generate_aem_key(
                        self.temporary_exposure_key.key_data,
                        self.config.aemk_info,
                        self.config.aemk_size,
                        self.primitives,
                        self.config.temporary_exposure_key_size,
                    )
        return aem_key

    def encrypt(
        self, rpi: bytes, metadata: Union[BluetoothMetadata, bytes]
    ) -> bytes:
        '''
        AEM = AES-CTR(AEMK, RPI, metadata)
        '''
        return self._transform(rpi, bytes(metadata))

    def decrypt(self, rpi: bytes, aem: bytes) -> bytes:
        '''
        Metadata = AES-CTR(AEMK, RPI, AEM)
        '''
        return self._transform(rpi, aem)

    def decrypt_metadata(self, rpi: bytes, aem: bytes) -> BluetoothMetadata:
        return BluetoothMetadata.from_bytes(self.decrypt(rpi, aem))

    def _transform(self, rpi: bytes, data: bytes) -> bytes:
        check_size('rpi', rpi, self.config.rpi_size)
        return self.encrypt_or_decrypt(
            self.aem_key, rpi, data, self.primitives, self.config.metadata_size
        )

    @staticmethod
    def generate_aem_key(
        temporary_exposure_key: bytes,
        aemk_info: Union[str, bytes],
        aemk_size: int,
        primitives: Optional[crypto.SymmetricPrimitives] = None,
        key_size: int = DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE,
    ) -> bytes:
        '''
        AEMK = HKDF(tek, NULL, UTF8("EN-AEMK"), 16)
        '''
        check_size('temporary_exposure_key', temporary_exposure_key, key_size)
        primitives = primitives or crypto.CryptographyPrimitives()
        if isinstance(aemk_info, str):
            aemk_info = aemk_info.encode('utf-8')
        return primitives.derive_key(temporary_exposure_key, aemk_info, aemk_size)

    @staticmethod
    def encrypt_or_decrypt(
        aem_key: bytes,
        rpi: bytes,
        data: bytes,
        primitives: Optional[crypto.SymmetricPrimitives] = None,
        metadata_size: int = DEFAULT_METADATA_SIZE,
    ) -> bytes:
        # AES-128 only, with the RPI as the initial counter block
        check_size('aem_key', aem_key, AES_KEY_SIZE)
        check_size('rpi', rpi, AES_BLOCK_SIZE)
        check_size('metadata', data, metadata_size)
        primitives = primitives or crypto.CryptographyPrimitives()
        return primitives.keystream_transform(aem_key, rpi, data)
