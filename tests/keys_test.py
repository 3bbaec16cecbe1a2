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

from exposure.config import Configuration
from exposure.core import InvalidArgumentError
from exposure.keys import (
    ReportType,
    RiskLevel,
    TemporaryExposureKey,
    aligned_interval_number,
    day_number,
    interval_number,
    interval_timestamp,
    rolling_start_interval_number,
)

from .vectors import CTINTERVAL_NUMBER_OF_GENERATED_KEY, TEMPORARY_TRACING_KEY


# -----------------------------------------------------------------------------
def test_interval_number():
    assert interval_number(0) == 0
    assert interval_number(599.9) == 0
    assert interval_number(600) == 1
    assert interval_number(CTINTERVAL_NUMBER_OF_GENERATED_KEY * 600 + 1) == (
        CTINTERVAL_NUMBER_OF_GENERATED_KEY
    )
    assert interval_number(120, interval_minutes=1) == 2


# -----------------------------------------------------------------------------
def test_aligned_interval_number():
    assert aligned_interval_number(CTINTERVAL_NUMBER_OF_GENERATED_KEY) == (
        CTINTERVAL_NUMBER_OF_GENERATED_KEY
    )
    assert aligned_interval_number(CTINTERVAL_NUMBER_OF_GENERATED_KEY + 143) == (
        CTINTERVAL_NUMBER_OF_GENERATED_KEY
    )
    assert aligned_interval_number(CTINTERVAL_NUMBER_OF_GENERATED_KEY + 144) == (
        CTINTERVAL_NUMBER_OF_GENERATED_KEY + 144
    )
    assert aligned_interval_number(25, ids_per_key=10) == 20


# -----------------------------------------------------------------------------
def test_day_helpers():
    assert interval_timestamp(CTINTERVAL_NUMBER_OF_GENERATED_KEY) == (
        CTINTERVAL_NUMBER_OF_GENERATED_KEY * 600
    )
    day = CTINTERVAL_NUMBER_OF_GENERATED_KEY // 144
    assert day_number(interval_timestamp(CTINTERVAL_NUMBER_OF_GENERATED_KEY)) == day
    assert rolling_start_interval_number(day) == CTINTERVAL_NUMBER_OF_GENERATED_KEY


# -----------------------------------------------------------------------------
def test_create():
    key = TemporaryExposureKey.create(
        bytearray(TEMPORARY_TRACING_KEY),
        CTINTERVAL_NUMBER_OF_GENERATED_KEY,
        transmission_risk_level=6,
        report_type=1,
        days_since_onset_of_symptoms=-3,
    )
    assert isinstance(key.key_data, bytes)
    assert key.key_data == TEMPORARY_TRACING_KEY
    assert key.rolling_period == 144
    assert key.rolling_end_interval_number == CTINTERVAL_NUMBER_OF_GENERATED_KEY + 144
    assert key.transmission_risk_level is RiskLevel.HIGH
    assert key.report_type is ReportType.CONFIRMED_TEST
    assert key.day_number() == CTINTERVAL_NUMBER_OF_GENERATED_KEY // 144
    assert TEMPORARY_TRACING_KEY.hex() in str(key)


# -----------------------------------------------------------------------------
@pytest.mark.parametrize(
    'kwargs',
    [
        {'key_data': bytes(15)},
        {'key_data': bytes(17)},
        {'rolling_start_interval_number': -1},
        {'rolling_period': 0},
        {'transmission_risk_level': 9},
        {'report_type': 6},
        {'days_since_onset_of_symptoms': 15},
        {'days_since_onset_of_symptoms': -15},
    ],
)
def test_invalid_key(kwargs):
    arguments = {
        'key_data': TEMPORARY_TRACING_KEY,
        'rolling_start_interval_number': 0,
    }
    arguments.update(kwargs)
    with pytest.raises(InvalidArgumentError):
        TemporaryExposureKey(**arguments)


# -----------------------------------------------------------------------------
def test_is_valid_for():
    key = TemporaryExposureKey.create(TEMPORARY_TRACING_KEY, 1000, rolling_period=10)
    assert not key.is_valid_for(999)
    assert key.is_valid_for(1000)
    assert key.is_valid_for(1009)
    assert not key.is_valid_for(1010)


# -----------------------------------------------------------------------------
def test_generate():
    key1 = TemporaryExposureKey.generate(CTINTERVAL_NUMBER_OF_GENERATED_KEY)
    key2 = TemporaryExposureKey.generate(CTINTERVAL_NUMBER_OF_GENERATED_KEY)
    assert len(key1.key_data) == 16
    assert key1.rolling_period == 144
    assert key1.key_data != key2.key_data


# -----------------------------------------------------------------------------
def test_min_max_keys():
    day = 18354
    assert TemporaryExposureKey.min_key(day).key_data == bytes(16)
    assert TemporaryExposureKey.max_key(day).key_data == b'\xff' * 16
    assert TemporaryExposureKey.min_key(day).rolling_start_interval_number == (
        day * 144
    )


# -----------------------------------------------------------------------------
def test_expiration_and_embargo():
    key = TemporaryExposureKey.create(
        TEMPORARY_TRACING_KEY, CTINTERVAL_NUMBER_OF_GENERATED_KEY
    )
    end = (CTINTERVAL_NUMBER_OF_GENERATED_KEY + 144) * 600
    assert key.expiration_time() == end
    assert key.embargo_end_time() == end + 12 * 600
    assert key.embargo_end_time(Configuration(clock_drift_intervals=0)) == end
