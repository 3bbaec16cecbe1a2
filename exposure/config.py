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

import copy
import dataclasses
import json
import logging
from typing import Any

from typing_extensions import Self

from exposure.core import (
    INTERVAL_NUMBER_SIZE,
    InvalidArgumentError,
    SECONDS_PER_MINUTE,
)


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
# fmt: off

DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE = 16
DEFAULT_RPIK_SIZE                   = 16
DEFAULT_AEMK_SIZE                   = 16
DEFAULT_RPIK_INFO                   = 'EN-RPIK'
DEFAULT_AEMK_INFO                   = 'EN-AEMK'
DEFAULT_RPI_PADDING                 = 'EN-RPI'
DEFAULT_RPI_SIZE                    = 16
DEFAULT_METADATA_SIZE               = 4
DEFAULT_IDS_PER_KEY                 = 144
DEFAULT_INTERVAL_MINUTES            = 10
DEFAULT_CLOCK_DRIFT_INTERVALS       = 12
DEFAULT_DAYS_TO_KEEP                = 14

# fmt: on


# -----------------------------------------------------------------------------
@dataclasses.dataclass
class Configuration:
    '''
    Protocol constants used by the key schedule, the identifier generator and the
    metadata engine.

    The defaults are the values published in the Exposure Notification
    Cryptography and Bluetooth specifications. Instances are passed explicitly to
    the objects that need them.
    '''

    temporary_exposure_key_size: int = DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE
    rpik_size: int = DEFAULT_RPIK_SIZE
    aemk_size: int = DEFAULT_AEMK_SIZE
    rpik_info: str = DEFAULT_RPIK_INFO
    aemk_info: str = DEFAULT_AEMK_INFO
    rpi_padding: str = DEFAULT_RPI_PADDING
    rpi_size: int = DEFAULT_RPI_SIZE
    metadata_size: int = DEFAULT_METADATA_SIZE
    ids_per_key: int = DEFAULT_IDS_PER_KEY
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    clock_drift_intervals: int = DEFAULT_CLOCK_DRIFT_INTERVALS
    days_to_keep: int = DEFAULT_DAYS_TO_KEEP
    tx_power: int = 0
    tx_power_calibration: int = 0
    metadata_v1_1: bool = True
    calibration_confidence: int = 0
    ignore_embargo_near_key_edges: bool = True

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        for name in (
            'temporary_exposure_key_size',
            'rpik_size',
            'aemk_size',
            'rpi_size',
            'metadata_size',
            'ids_per_key',
            'interval_minutes',
        ):
            if getattr(self, name) <= 0:
                raise InvalidArgumentError(f'{name} must be > 0')
        if self.days_to_keep < 0 or self.clock_drift_intervals < 0:
            raise InvalidArgumentError(
                'days_to_keep and clock_drift_intervals must be >= 0'
            )

        # The padding string and the interval number must fit in one block
        if len(self.rpi_padding_bytes) + INTERVAL_NUMBER_SIZE > self.rpi_size:
            raise InvalidArgumentError(
                f'rpi_padding too long for a {self.rpi_size} byte block'
            )

    @property
    def rpik_info_bytes(self) -> bytes:
        return self.rpik_info.encode('utf-8')

    @property
    def aemk_info_bytes(self) -> bytes:
        return self.aemk_info.encode('utf-8')

    @property
    def rpi_padding_bytes(self) -> bytes:
        return self.rpi_padding.encode('utf-8')

    @property
    def interval_seconds(self) -> int:
        return self.interval_minutes * SECONDS_PER_MINUTE

    def load_from_dict(self, config: dict[str, Any]) -> None:
        config = copy.deepcopy(config)
        field_names = {field.name for field in dataclasses.fields(self)}

        for key, value in config.items():
            if key not in field_names:
                raise InvalidArgumentError(f'unknown configuration key: {key}')
            setattr(self, key, value)
        self.validate()

        logger.debug(f'configuration loaded: {self}')

    def load_from_file(self, filename: str) -> None:
        with open(filename, encoding='utf-8') as file:
            self.load_from_dict(json.load(file))

    @classmethod
    def from_file(cls: type[Self], filename: str) -> Self:
        config = cls()
        config.load_from_file(filename)
        return config

    @classmethod
    def from_dict(cls: type[Self], config: dict[str, Any]) -> Self:
        configuration = cls()
        configuration.load_from_dict(config)
        return configuration
