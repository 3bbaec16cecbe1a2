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

import time
from typing import Optional

import click

import exposure.logging
from exposure.aem import AssociatedEncryptedMetadataGenerator
from exposure.config import Configuration
from exposure.core import BaseExposureError
from exposure.keys import TemporaryExposureKey, aligned_interval_number, interval_number
from exposure.rpi import RollingProximityIdGenerator


# -----------------------------------------------------------------------------
def parse_hex(value: str) -> bytes:
    try:
        return bytes.fromhex(value.replace(':', '').replace(' ', ''))
    except ValueError as error:
        raise click.BadParameter(f'invalid hex string: {value}') from error


def temporary_exposure_key(
    tek: str, start: Optional[int], period: int, config: Configuration
) -> TemporaryExposureKey:
    if start is None:
        start = aligned_interval_number(
            interval_number(time.time(), config.interval_minutes), config.ids_per_key
        )
    return TemporaryExposureKey.create(parse_hex(tek), start, period)


# -----------------------------------------------------------------------------
class ExposureGroup(click.Group):
    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except BaseExposureError as error:
            raise click.ClickException(str(error)) from error


# -----------------------------------------------------------------------------
@click.group(cls=ExposureGroup)
@click.option(
    '--config', 'config_file', metavar='FILENAME', help='JSON configuration file'
)
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str]) -> None:
    '''
    This is a tool for generating Temporary Exposure Keys, Rolling Proximity
    Identifiers, and encrypting/decrypting Associated Encrypted Metadata
    '''
    exposure.logging.setup_basic_logging('WARNING')
    ctx.obj = (
        Configuration.from_file(config_file) if config_file else Configuration()
    )


@cli.command()
@click.option('--start', type=int, help='Rolling start interval number')
@click.pass_obj
def gen_tek(config: Configuration, start: Optional[int]) -> None:
    '''Generate a random Temporary Exposure Key'''
    if start is None:
        start = aligned_interval_number(
            interval_number(time.time(), config.interval_minutes), config.ids_per_key
        )
    key = TemporaryExposureKey.generate(start, config.ids_per_key)
    print(f'{key.key_data.hex()} {key.rolling_start_interval_number}')


@cli.command()
@click.argument('tek', type=str)
@click.pass_obj
def gen_rpik(config: Configuration, tek: str) -> None:
    '''Derive the Rolling Proximity Identifier Key of a TEK'''
    print(
        RollingProximityIdGenerator.generate_rpi_key(
            parse_hex(tek),
            config.rpik_info,
            config.rpik_size,
            key_size=config.temporary_exposure_key_size,
        ).hex()
    )


@cli.command()
@click.argument('tek', type=str)
@click.pass_obj
def gen_aemk(config: Configuration, tek: str) -> None:
    '''Derive the Associated Encrypted Metadata Key of a TEK'''
    print(
        AssociatedEncryptedMetadataGenerator.generate_aem_key(
            parse_hex(tek),
            config.aemk_info,
            config.aemk_size,
            key_size=config.temporary_exposure_key_size,
        ).hex()
    )


@cli.command()
@click.argument('tek', type=str)
@click.argument('interval', type=int)
@click.option('--start', type=int, help='Rolling start interval number')
@click.pass_obj
def gen_rpi(
    config: Configuration, tek: str, interval: int, start: Optional[int]
) -> None:
    '''Generate the RPI of a TEK for one interval number'''
    if start is None:
        start = aligned_interval_number(interval, config.ids_per_key)
    key = temporary_exposure_key(tek, start, config.ids_per_key, config)
    generator = RollingProximityIdGenerator.from_temporary_exposure_key(key, config)
    print(generator.generate_id(interval).hex())


@cli.command()
@click.argument('tek', type=str)
@click.option('--start', type=int, help='Rolling start interval number')
@click.option('--period', type=int, help='Rolling period')
@click.pass_obj
def gen_rpis(
    config: Configuration, tek: str, start: Optional[int], period: Optional[int]
) -> None:
    '''Generate all the RPIs of a TEK'''
    key = temporary_exposure_key(tek, start, period or config.ids_per_key, config)
    generator = RollingProximityIdGenerator.from_temporary_exposure_key(key, config)
    for generated_id in generator.generate_ids():
        print(f'{generated_id.interval_number} {generated_id.rpi.hex()}')


@cli.command()
@click.argument('aemk', type=str)
@click.argument('rpi', type=str)
@click.argument('metadata', type=str)
def encrypt_aem(aemk: str, rpi: str, metadata: str) -> None:
    '''Encrypt 4 bytes of metadata with an AEMK and an RPI'''
    print(
        AssociatedEncryptedMetadataGenerator.encrypt_or_decrypt(
            parse_hex(aemk), parse_hex(rpi), parse_hex(metadata)
        ).hex()
    )


@cli.command()
@click.argument('aemk', type=str)
@click.argument('rpi', type=str)
@click.argument('aem', type=str)
def decrypt_aem(aemk: str, rpi: str, aem: str) -> None:
    '''Decrypt 4 bytes of AEM with an AEMK and an RPI'''
    print(
        AssociatedEncryptedMetadataGenerator.encrypt_or_decrypt(
            parse_hex(aemk), parse_hex(rpi), parse_hex(aem)
        ).hex()
    )


def main():
    cli()


# -----------------------------------------------------------------------------
if __name__ == '__main__':
    main()
