# Copyright 2025 Google LLC
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

import logging
import os
import sys
from typing import Any, Optional, TextIO

import click


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
LOGLEVEL_ENVIRONMENT_VARIABLE = 'EXPOSURE_LOGLEVEL'

# fmt: off
LEVEL_STYLES: dict[int, dict[str, Any]] = {
    logging.DEBUG:    {'fg': 'white'},
    logging.INFO:     {'fg': 'green'},
    logging.WARNING:  {'fg': 'yellow'},
    logging.ERROR:    {'fg': 'red'},
    logging.CRITICAL: {'fg': 'black', 'bg': 'red'},
}
# fmt: on


# -----------------------------------------------------------------------------
class ColorFormatter(logging.Formatter):
    '''
    Prefixes each record with its time, level initial and logger name, styled by
    level. Styling is dropped when `color` is False.
    '''

    def __init__(self, color: bool = True) -> None:
        super().__init__(fmt='{message}', datefmt='%H:%M:%S', style='{')
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        prefix = (
            f'{self.formatTime(record, self.datefmt)}.{record.msecs:03.0f} '
            f'{record.levelname:.1} {record.name}: '
        )
        if self.color:
            style = LEVEL_STYLES.get(record.levelno, LEVEL_STYLES[logging.INFO])
            prefix = click.style(prefix, **style)
        return prefix + super().format(record)


def setup_basic_logging(
    default_level: str = 'INFO', stream: Optional[TextIO] = None
) -> None:
    '''
    Set up logging with logging.basicConfig and a ColorFormatter.

    The level is taken from the EXPOSURE_LOGLEVEL environment variable when it is
    set, and from `default_level` otherwise. Colors are only used when `stream`
    (stderr by default) is a terminal.
    '''
    stream = stream or sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColorFormatter(color=stream.isatty()))
    logging.basicConfig(
        level=os.environ.get(LOGLEVEL_ENVIRONMENT_VARIABLE, default_level).upper(),
        handlers=[handler],
    )
