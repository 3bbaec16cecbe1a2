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
# Rolling Proximity Identifiers
#
# RPIK     = HKDF(TEK, NULL, UTF8("EN-RPIK"), 16)
# RPI[j]   = AES-128(RPIK, PaddedData[j])
# PaddedData[j] = UTF8("EN-RPI") || 0x000000000000 || ENIN[j] (uint32 LE)
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# Imports
# -----------------------------------------------------------------------------
from __future__ import annotations

import dataclasses
import logging
import time
from typing import Optional, Union

from exposure import crypto
from exposure.config import Configuration, DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE
from exposure.core import (
    AES_BLOCK_SIZE,
    AES_KEY_SIZE,
    INTERVAL_NUMBER_SIZE,
    InvalidArgumentError,
    check_size,
    interval_number_to_bytes,
)
from exposure.keys import TemporaryExposureKey, aligned_interval_number, interval_number


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode('utf-8') if isinstance(value, str) else bytes(value)


# -----------------------------------------------------------------------------
def padded_data(en_interval_number: int, padding: bytes) -> bytes:
    '''
    The 16-byte AES input for one interval:

      [0 - 5]   padding, normally UTF8("EN-RPI")
      [6 - 11]  zeros
      [12 - 15] en_interval_number, uint32 little-endian
    '''
    zeros = bytes(AES_BLOCK_SIZE - len(padding) - INTERVAL_NUMBER_SIZE)
    return padding + zeros + interval_number_to_bytes(en_interval_number)


# -----------------------------------------------------------------------------
def aggregate_padded_data(
    start_en_interval_number: int, num_ids: int, padding: bytes
) -> bytes:
    '''
    `num_ids` consecutive padded blocks, starting at `start_en_interval_number`.
    '''
    return b''.join(
        padded_data(start_en_interval_number + i, padding) for i in range(num_ids)
    )


# -----------------------------------------------------------------------------
@dataclasses.dataclass(frozen=True)
class GeneratedRollingProximityId:
    '''
    A Rolling Proximity Identifier together with the interval it was generated for.
    '''

    rpi: bytes
    interval_number: int

    def __str__(self) -> str:
        return f'RPI({self.rpi.hex()}, interval_number={self.interval_number})'


# -----------------------------------------------------------------------------
class PaddedDataCache:
    '''
    Precomputed aggregate padded blocks for `size` key rolling periods, starting at
    `base_en_interval_number`.

    The padded blocks do not depend on the key, so every key that starts at the
    same aligned interval number shares the same entry. The table is built once in
    the constructor and is read-only afterwards.
    '''

    def __init__(
        self,
        base_en_interval_number: int,
        size: int,
        padding: Union[str, bytes],
        ids_per_key: int,
    ) -> None:
        self.base_en_interval_number = base_en_interval_number
        self.size = size
        self.ids_per_key = ids_per_key
        padding = _as_bytes(padding)
        self.cached_data = tuple(
            aggregate_padded_data(
                base_en_interval_number + i * ids_per_key, ids_per_key, padding
            )
            for i in range(size)
        )
        logger.debug(
            f'padded data cache: base={base_en_interval_number}, size={size}, '
            f'ids_per_key={ids_per_key}'
        )

    @classmethod
    def create_instance(
        cls,
        base_en_interval_number: int,
        cache_size: int,
        padding: Union[str, bytes],
        ids_per_key: int,
    ) -> PaddedDataCache:
        return cls(base_en_interval_number, cache_size, padding, ids_per_key)

    def _index(self, en_interval_number: int) -> int:
        # The interval number must be aligned to ids_per_key
        offset = en_interval_number - self.base_en_interval_number
        return offset // self.ids_per_key if offset % self.ids_per_key == 0 else -1

    def get_cached_data(self, en_interval_number: int) -> Optional[bytes]:
        '''
        Returns the aggregate padded data starting at `en_interval_number`, or None
        when that interval number is not aligned or not covered by the cache.
        '''
        index = self._index(en_interval_number)
        return self.cached_data[index] if 0 <= index < self.size else None


# -----------------------------------------------------------------------------
class RollingProximityIdGenerator:
    '''
    Generates the Rolling Proximity Identifiers of one Temporary Exposure Key.

    The RPIK is derived once, in the constructor. An instance is bound to a single
    key and its validity window for its whole lifetime.
    '''

    def __init__(
        self,
        key_data: bytes,
        rolling_start_interval_number: int,
        rolling_end_interval_number: int,
        rpik_size: int,
        rpik_info: Union[str, bytes],
        rpi_padding: Union[str, bytes],
        padded_data_cache: Optional[PaddedDataCache] = None,
        primitives: Optional[crypto.SymmetricPrimitives] = None,
        key_size: int = DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE,
    ) -> None:
        if not 0 <= rolling_start_interval_number < rolling_end_interval_number:
            raise InvalidArgumentError(
                'invalid interval window '
                f'[{rolling_start_interval_number}, {rolling_end_interval_number})'
            )
        self.rolling_start_interval_number = rolling_start_interval_number
        self.rolling_end_interval_number = rolling_end_interval_number
        self.padding = _as_bytes(rpi_padding)
        self.padded_data_cache = padded_data_cache
        self.primitives = primitives or crypto.CryptographyPrimitives()
        if len(self.padding) + INTERVAL_NUMBER_SIZE > AES_BLOCK_SIZE:
            raise InvalidArgumentError(
                f'padding is too long ({len(self.padding)} bytes)'
            )
        rpi_key = self.generate_rpi_key(
            key_data, rpik_info, rpik_size, self.primitives, key_size
        )

        # RPIs are AES-128 blocks
        check_size('rpi_key', rpi_key, AES_KEY_SIZE)
        self.encryptor = self.primitives.block_encryptor(rpi_key)

    @classmethod
    def from_temporary_exposure_key(
        cls,
        temporary_exposure_key: TemporaryExposureKey,
        config: Optional[Configuration] = None,
        padded_data_cache: Optional[PaddedDataCache] = None,
        primitives: Optional[crypto.SymmetricPrimitives] = None,
    ) -> RollingProximityIdGenerator:
        config = config or Configuration()
        return cls(
            temporary_exposure_key.key_data,
            temporary_exposure_key.rolling_start_interval_number,
            temporary_exposure_key.rolling_end_interval_number,
            config.rpik_size,
            config.rpik_info,
            config.rpi_padding,
            padded_data_cache,
            primitives,
            config.temporary_exposure_key_size,
        )

    @staticmethod
    def generate_rpi_key(
        temporary_exposure_key: bytes,
        rpik_info: Union[str, bytes],
        rpik_size: int,
        primitives: Optional[crypto.SymmetricPrimitives] = None,
        key_size: int = DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE,
    ) -> bytes:
        '''
        RPIK = HKDF(tek, NULL, UTF8("EN-RPIK"), 16)
        '''
        check_size('temporary_exposure_key', temporary_exposure_key, key_size)
        primitives = primitives or crypto.CryptographyPrimitives()
        return primitives.derive_key(
            temporary_exposure_key, _as_bytes(rpik_info), rpik_size
        )

    @property
    def rolling_period(self) -> int:
        return self.rolling_end_interval_number - self.rolling_start_interval_number

    def generate_id(self, en_interval_number: int) -> bytes:
        '''
        Generates the RPI for a single 10-minute interval of this key.
        '''
        if not (
            self.rolling_start_interval_number
            <= en_interval_number
            < self.rolling_end_interval_number
        ):
            raise InvalidArgumentError(
                f'interval number {en_interval_number} outside of '
                f'[{self.rolling_start_interval_number}, '
                f'{self.rolling_end_interval_number})'
            )
        return self.encryptor.encrypt(padded_data(en_interval_number, self.padding))

    def generate_ids(
        self, reused_output: Optional[bytearray] = None
    ) -> list[GeneratedRollingProximityId]:
        '''
        Generates the RPIs for every interval of this key, in ascending order.

        `reused_output` receives the raw identifiers back to back. When it is too
        small for the whole rolling period, only as many identifiers as it can hold
        are generated.
        '''
        if reused_output is None:
            reused_output = bytearray(self.rolling_period * AES_BLOCK_SIZE)
        num_ids = min(self.rolling_period, len(reused_output) // AES_BLOCK_SIZE)
        if num_ids < self.rolling_period:
            logger.debug(
                f'output buffer holds {num_ids} of {self.rolling_period} ids'
            )
        if num_ids <= 0:
            return []

        data = None
        if (
            self.padded_data_cache is not None
            and num_ids <= self.padded_data_cache.ids_per_key
        ):
            data = self.padded_data_cache.get_cached_data(
                self.rolling_start_interval_number
            )
        if data is None:
            data = aggregate_padded_data(
                self.rolling_start_interval_number, num_ids, self.padding
            )

        size = num_ids * AES_BLOCK_SIZE
        reused_output[:size] = self.encryptor.encrypt(data[:size])
        return [
            GeneratedRollingProximityId(
                bytes(reused_output[i * AES_BLOCK_SIZE : (i + 1) * AES_BLOCK_SIZE]),
                self.rolling_start_interval_number + i,
            )
            for i in range(num_ids)
        ]

    # -------------------------------------------------------------------------
    class Factory:
        '''
        Creates generators sharing a single PaddedDataCache that covers the
        retention window ending with the current key rolling period.
        '''

        def __init__(
            self,
            config: Optional[Configuration] = None,
            now: Optional[float] = None,
            primitives: Optional[crypto.SymmetricPrimitives] = None,
        ) -> None:
            self.config = config or Configuration()
            self.primitives = primitives or crypto.CryptographyPrimitives()
            ids_per_key = self.config.ids_per_key
            start_en_interval_number = aligned_interval_number(
                interval_number(
                    time.time() if now is None else now, self.config.interval_minutes
                ),
                ids_per_key,
            )
            self.padded_data_cache = PaddedDataCache(
                start_en_interval_number - self.config.days_to_keep * ids_per_key,
                self.config.days_to_keep + 1,
                self.config.rpi_padding_bytes,
                ids_per_key,
            )

        def get_instance(
            self,
            key_data: bytes,
            rolling_start_interval_number: int,
            rolling_end_interval_number: int,
        ) -> RollingProximityIdGenerator:
            window = rolling_end_interval_number - rolling_start_interval_number
            if window > self.config.ids_per_key:
                logger.warning(
                    f'RPI generator window is greater than {self.config.ids_per_key}.'
                    f' start_interval_number={rolling_start_interval_number},'
                    f' end_interval_number={rolling_end_interval_number}'
                )
            return RollingProximityIdGenerator(
                key_data,
                rolling_start_interval_number,
                rolling_end_interval_number,
                self.config.rpik_size,
                self.config.rpik_info_bytes,
                self.config.rpi_padding_bytes,
                self.padded_data_cache,
                self.primitives,
                self.config.temporary_exposure_key_size,
            )

        def get_instance_for_key(
            self, temporary_exposure_key: TemporaryExposureKey
        ) -> RollingProximityIdGenerator:
            return self.get_instance(
                temporary_exposure_key.key_data,
                temporary_exposure_key.rolling_start_interval_number,
                temporary_exposure_key.rolling_end_interval_number,
            )
