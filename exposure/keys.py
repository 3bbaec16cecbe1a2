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
# Temporary Exposure Keys
# -----------------------------------------------------------------------------

# -----------------------------------------------------------------------------
# Imports
# -----------------------------------------------------------------------------
from __future__ import annotations

import dataclasses
import enum
import logging
import secrets
from typing import Any, Optional

from typing_extensions import Self

from exposure.config import (
    Configuration,
    DEFAULT_IDS_PER_KEY,
    DEFAULT_INTERVAL_MINUTES,
    DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE,
)
from exposure.core import (
    InvalidArgumentError,
    MINUTES_PER_DAY,
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

MIN_DAY_NUMBER = 0
MAX_DAY_NUMBER = 0xFFFF
MIN_DAYS_SINCE_ONSET_OF_SYMPTOMS = -14
MAX_DAYS_SINCE_ONSET_OF_SYMPTOMS = 14

# fmt: on


# -----------------------------------------------------------------------------
class RiskLevel(enum.IntEnum):
    INVALID = 0
    LOWEST = 1
    LOW = 2
    LOW_MEDIUM = 3
    MEDIUM = 4
    MEDIUM_HIGH = 5
    HIGH = 6
    VERY_HIGH = 7
    HIGHEST = 8


# -----------------------------------------------------------------------------
class ReportType(enum.IntEnum):
    UNKNOWN = 0
    CONFIRMED_TEST = 1
    CONFIRMED_CLINICAL_DIAGNOSIS = 2
    SELF_REPORT = 3
    RECURSIVE = 4
    REVOKED = 5


# -----------------------------------------------------------------------------
# Interval numbers
# -----------------------------------------------------------------------------
def interval_number(
    timestamp: float, interval_minutes: int = DEFAULT_INTERVAL_MINUTES
) -> int:
    '''
    Returns the EN interval number (10-minute slots since the Unix epoch) that
    contains `timestamp` (in seconds).
    '''
    return int(timestamp // (interval_minutes * SECONDS_PER_MINUTE))


def aligned_interval_number(
    en_interval_number: int, ids_per_key: int = DEFAULT_IDS_PER_KEY
) -> int:
    '''
    Returns the first interval number of the key rolling period that contains
    `en_interval_number`.
    '''
    return ids_per_key * (en_interval_number // ids_per_key)


def interval_timestamp(
    en_interval_number: int, interval_minutes: int = DEFAULT_INTERVAL_MINUTES
) -> int:
    '''
    Returns the start of an interval, in seconds since the Unix epoch.
    '''
    return en_interval_number * interval_minutes * SECONDS_PER_MINUTE


def day_number(timestamp: float) -> int:
    '''
    Returns the day number (24-hour UTC days since the Unix epoch) of `timestamp`.
    '''
    return int(timestamp // (MINUTES_PER_DAY * SECONDS_PER_MINUTE))


def rolling_start_interval_number(
    day: int, ids_per_key: int = DEFAULT_IDS_PER_KEY
) -> int:
    return day * ids_per_key


# -----------------------------------------------------------------------------
@dataclasses.dataclass(frozen=True)
class TemporaryExposureKey:
    '''
    A Temporary Exposure Key, valid for the intervals
    [rolling_start_interval_number, rolling_start_interval_number + rolling_period).

    Instances are immutable; the constructor validates every field.
    '''

    key_data: bytes
    rolling_start_interval_number: int
    rolling_period: int = DEFAULT_IDS_PER_KEY
    transmission_risk_level: RiskLevel = RiskLevel.INVALID
    report_type: ReportType = ReportType.UNKNOWN
    days_since_onset_of_symptoms: Optional[int] = None

    def __post_init__(self) -> None:
        if len(self.key_data) != DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE:
            raise InvalidArgumentError(
                f'key_data must be {DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE} bytes '
                f'(got {len(self.key_data)})'
            )
        if self.rolling_start_interval_number < 0:
            raise InvalidArgumentError(
                f'rolling_start_interval_number ({self.rolling_start_interval_number})'
                ' must be >= 0'
            )
        if self.rolling_period <= 0:
            raise InvalidArgumentError(
                f'rolling_period ({self.rolling_period}) must be > 0'
            )
        if self.days_since_onset_of_symptoms is not None and not (
            MIN_DAYS_SINCE_ONSET_OF_SYMPTOMS
            <= self.days_since_onset_of_symptoms
            <= MAX_DAYS_SINCE_ONSET_OF_SYMPTOMS
        ):
            raise InvalidArgumentError(
                f'days_since_onset_of_symptoms ({self.days_since_onset_of_symptoms})'
                f' must be >= {MIN_DAYS_SINCE_ONSET_OF_SYMPTOMS}'
                f' and <= {MAX_DAYS_SINCE_ONSET_OF_SYMPTOMS}'
            )

        # Normalize to immutable bytes and enum values
        object.__setattr__(self, 'key_data', bytes(self.key_data))
        try:
            object.__setattr__(
                self,
                'transmission_risk_level',
                RiskLevel(self.transmission_risk_level),
            )
            object.__setattr__(self, 'report_type', ReportType(self.report_type))
        except ValueError as error:
            raise InvalidArgumentError(str(error)) from error

    @classmethod
    def create(
        cls: type[Self],
        key_data: bytes,
        rolling_start_interval_number: int,
        rolling_period: int = DEFAULT_IDS_PER_KEY,
        **kwargs: Any,
    ) -> Self:
        return cls(
            key_data=key_data,
            rolling_start_interval_number=rolling_start_interval_number,
            rolling_period=rolling_period,
            **kwargs,
        )

    @classmethod
    def generate(
        cls: type[Self],
        rolling_start_interval_number: int,
        rolling_period: int = DEFAULT_IDS_PER_KEY,
    ) -> Self:
        '''
        Creates a new key with random key data.
        '''
        return cls(
            key_data=secrets.token_bytes(DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE),
            rolling_start_interval_number=rolling_start_interval_number,
            rolling_period=rolling_period,
        )

    @classmethod
    def min_key(
        cls: type[Self], day: int, ids_per_key: int = DEFAULT_IDS_PER_KEY
    ) -> Self:
        return cls(
            key_data=bytes(DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE),
            rolling_start_interval_number=rolling_start_interval_number(
                day, ids_per_key
            ),
        )

    @classmethod
    def max_key(
        cls: type[Self], day: int, ids_per_key: int = DEFAULT_IDS_PER_KEY
    ) -> Self:
        return cls(
            key_data=bytes([0xFF] * DEFAULT_TEMPORARY_EXPOSURE_KEY_SIZE),
            rolling_start_interval_number=rolling_start_interval_number(
                day, ids_per_key
            ),
        )

    @property
    def rolling_end_interval_number(self) -> int:
        '''
        First interval number (exclusive) that no longer belongs to this key.
        '''
        return self.rolling_start_interval_number + self.rolling_period

    def is_valid_for(self, en_interval_number: int) -> bool:
        return (
            self.rolling_start_interval_number
            <= en_interval_number
            < self.rolling_end_interval_number
        )

    def day_number(self, ids_per_key: int = DEFAULT_IDS_PER_KEY) -> int:
        return self.rolling_start_interval_number // ids_per_key

    def expiration_time(self, config: Optional[Configuration] = None) -> int:
        '''
        End of the validity window in seconds since the Unix epoch, without the
        embargo.
        '''
        config = config or Configuration()
        return interval_timestamp(
            self.rolling_end_interval_number, config.interval_minutes
        )

    def embargo_end_time(self, config: Optional[Configuration] = None) -> int:
        '''
        Time (seconds since the Unix epoch) at which the key may be released: the
        end of its validity window plus the matching clock drift allowance.
        '''
        config = config or Configuration()
        return interval_timestamp(
            self.rolling_end_interval_number + config.clock_drift_intervals,
            config.interval_minutes,
        )

    def __str__(self) -> str:
        return (
            f'TemporaryExposureKey(key_data={self.key_data.hex()}, '
            f'rolling_start_interval_number={self.rolling_start_interval_number}, '
            f'rolling_period={self.rolling_period}, '
            f'transmission_risk_level={self.transmission_risk_level.name}, '
            f'report_type={self.report_type.name})'
        )
