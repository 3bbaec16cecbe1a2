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

import struct


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
# fmt: off

AES_BLOCK_SIZE             = 16
AES_KEY_SIZE               = 16
INTERVAL_NUMBER_SIZE       = 4
MINUTES_PER_DAY            = 24 * 60
SECONDS_PER_MINUTE         = 60

# fmt: on


# -----------------------------------------------------------------------------
# Utils
# -----------------------------------------------------------------------------
def check_size(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise InvalidArgumentError(
            f'{name} must be {size} bytes long (got {len(value)})'
        )


def interval_number_to_bytes(interval_number: int) -> bytes:
    '''
    Little-endian uint32 encoding of an EN interval number.
    '''
    return struct.pack('<I', interval_number & 0xFFFFFFFF)


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------
class BaseExposureError(Exception):
    """Base Error raised by the exposure package."""


class InvalidArgumentError(BaseExposureError, ValueError):
    """Invalid Argument Error"""


class InvalidStateError(BaseExposureError):
    """Invalid State Error"""


class CryptoError(BaseExposureError):
    """Cryptographic operation failed"""
