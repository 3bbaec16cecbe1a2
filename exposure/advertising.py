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
from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections.abc import Callable
from typing import Optional

from pyee import EventEmitter

from exposure.aem import AssociatedEncryptedMetadataGenerator, BluetoothMetadata
from exposure.config import Configuration, DEFAULT_METADATA_SIZE
from exposure.core import AES_BLOCK_SIZE, InvalidStateError, check_size
from exposure.keys import (
    TemporaryExposureKey,
    aligned_interval_number,
    interval_number,
)
from exposure.rpi import GeneratedRollingProximityId, RollingProximityIdGenerator


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
@dataclasses.dataclass(frozen=True)
class AdvertisementPacket:
    '''
    Service data advertised for one interval: RPI || AEM.

    The plaintext metadata is kept for debugging only and is not part of the
    packet.
    '''

    rpi: bytes
    metadata: bytes
    encrypted_metadata: bytes

    def __post_init__(self) -> None:
        check_size('rpi', self.rpi, AES_BLOCK_SIZE)
        check_size('metadata', self.metadata, DEFAULT_METADATA_SIZE)
        check_size(
            'encrypted_metadata', self.encrypted_metadata, DEFAULT_METADATA_SIZE
        )

    def __bytes__(self) -> bytes:
        return self.rpi + self.encrypted_metadata

    def __str__(self) -> str:
        return f'ID: {self.rpi.hex()} Metadata: {self.encrypted_metadata.hex()}'


# -----------------------------------------------------------------------------
class RollingProximityIdManager(EventEmitter):
    '''
    Keeps track of the key and identifier to advertise at the current time.

    A new Temporary Exposure Key is generated, starting at the current aligned
    interval, whenever the current one expires. Each new key is announced with a
    'temporary_exposure_key' event so that it can be stored.
    '''

    EVENT_TEMPORARY_EXPOSURE_KEY = 'temporary_exposure_key'

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        temporary_exposure_key: Optional[TemporaryExposureKey] = None,
        config: Optional[Configuration] = None,
    ) -> None:
        super().__init__()
        self.clock = clock
        self.config = config or Configuration()
        self.temporary_exposure_key = temporary_exposure_key
        self.latest_en_interval_number = 0
        self.latest_rpi: Optional[bytes] = None
        self.lock = threading.Lock()

    def current_rpi(self) -> bytes:
        new_key = None
        with self.lock:
            en_interval_number = interval_number(
                self.clock(), self.config.interval_minutes
            )
            if (
                self.latest_rpi is not None
                and en_interval_number == self.latest_en_interval_number
            ):
                logger.debug(
                    f'same latest_en_interval_number={en_interval_number}'
                )
                return self.latest_rpi

            logger.debug(
                f'current/latest en_interval_number='
                f'{en_interval_number}/{self.latest_en_interval_number}'
            )
            if (
                self.temporary_exposure_key is None
                or not self.temporary_exposure_key.is_valid_for(en_interval_number)
            ):
                new_key = self.temporary_exposure_key = TemporaryExposureKey.generate(
                    aligned_interval_number(
                        en_interval_number, self.config.ids_per_key
                    ),
                    self.config.ids_per_key,
                )
                logger.info('generated a new Temporary Exposure Key')

            self.latest_en_interval_number = en_interval_number
            rpi = self.latest_rpi = (
                RollingProximityIdGenerator.from_temporary_exposure_key(
                    self.temporary_exposure_key, self.config
                ).generate_id(en_interval_number)
            )
            logger.info(f'generated a new RPI: {rpi.hex()}')

        # Listeners may call back into the manager
        if new_key is not None:
            self.emit(self.EVENT_TEMPORARY_EXPOSURE_KEY, new_key)
        return rpi

    def current_temporary_exposure_key(self) -> TemporaryExposureKey:
        with self.lock:
            if self.temporary_exposure_key is None:
                raise InvalidStateError('current_rpi() must be called first')
            return self.temporary_exposure_key

    def clear_cache(self) -> None:
        with self.lock:
            logger.info('clearing cache')
            self.latest_en_interval_number = 0
            self.temporary_exposure_key = None
            self.latest_rpi = None


# -----------------------------------------------------------------------------
class AdvertisementGenerator:
    '''
    Builds the advertisement packet for the current interval.
    '''

    def __init__(
        self,
        manager: RollingProximityIdManager,
        config: Optional[Configuration] = None,
    ) -> None:
        self.manager = manager
        self.config = config or manager.config

    def generate_packet(
        self, metadata: Optional[BluetoothMetadata] = None
    ) -> AdvertisementPacket:
        if metadata is None:
            metadata = BluetoothMetadata.from_configuration(self.config)
        rpi = self.manager.current_rpi()
        logger.debug(
            f'generating advertisement with version={metadata.version}, '
            f'tx={metadata.tx_power}'
        )
        aem_generator = AssociatedEncryptedMetadataGenerator(
            self.manager.current_temporary_exposure_key(), self.config
        )
        return AdvertisementPacket(
            rpi=rpi,
            metadata=bytes(metadata),
            encrypted_metadata=aem_generator.encrypt(rpi, metadata),
        )


# -----------------------------------------------------------------------------
# Sighting validation
# -----------------------------------------------------------------------------
def valid_window_start_interval_number(
    generated_id: GeneratedRollingProximityId, config: Optional[Configuration] = None
) -> int:
    config = config or Configuration()
    return generated_id.interval_number - config.clock_drift_intervals


def valid_window_end_interval_number(
    generated_id: GeneratedRollingProximityId,
    diagnosis_key: TemporaryExposureKey,
    config: Optional[Configuration] = None,
) -> int:
    '''
    Exclusive end of the window in which a sighting of `generated_id` is accepted.

    When enabled, the clock drift allowance is clamped to the end of the diagnosis
    key's validity window.
    '''
    config = config or Configuration()
    window_end = generated_id.interval_number + config.clock_drift_intervals + 1
    if config.ignore_embargo_near_key_edges:
        window_end = min(window_end, diagnosis_key.rolling_end_interval_number)
    return window_end


def is_sighting_valid(
    generated_id: GeneratedRollingProximityId,
    sighting_time: float,
    diagnosis_key: TemporaryExposureKey,
    config: Optional[Configuration] = None,
) -> bool:
    config = config or Configuration()
    sighting_interval_number = interval_number(sighting_time, config.interval_minutes)
    return (
        valid_window_start_interval_number(generated_id, config)
        <= sighting_interval_number
        < valid_window_end_interval_number(generated_id, diagnosis_key, config)
    )
