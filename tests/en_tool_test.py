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
import json

from click.testing import CliRunner

from apps.en_tool import cli

from .vectors import (
    ADVERTISED_DATA,
    AEMK,
    BLE_METADATA,
    CTINTERVAL_NUMBER_OF_GENERATED_KEY,
    RPIK,
    TEMPORARY_TRACING_KEY,
)


# -----------------------------------------------------------------------------
def run(*args: str):
    return CliRunner().invoke(cli, list(args))


# -----------------------------------------------------------------------------
def test_gen_tek():
    result = run('gen-tek', '--start', str(CTINTERVAL_NUMBER_OF_GENERATED_KEY))
    assert result.exit_code == 0
    key_data, start = result.output.split()
    assert len(bytes.fromhex(key_data)) == 16
    assert int(start) == CTINTERVAL_NUMBER_OF_GENERATED_KEY


# -----------------------------------------------------------------------------
def test_gen_keys():
    result = run('gen-rpik', TEMPORARY_TRACING_KEY.hex())
    assert result.exit_code == 0
    assert result.output.strip() == RPIK.hex()

    result = run('gen-aemk', TEMPORARY_TRACING_KEY.hex())
    assert result.exit_code == 0
    assert result.output.strip() == AEMK.hex()


# -----------------------------------------------------------------------------
def test_gen_rpi():
    result = run(
        'gen-rpi',
        TEMPORARY_TRACING_KEY.hex(),
        str(CTINTERVAL_NUMBER_OF_GENERATED_KEY + 2),
    )
    assert result.exit_code == 0
    assert result.output.strip() == ADVERTISED_DATA[2].rpi.hex()


# -----------------------------------------------------------------------------
def test_gen_rpi_out_of_range():
    result = run(
        'gen-rpi',
        TEMPORARY_TRACING_KEY.hex(),
        str(CTINTERVAL_NUMBER_OF_GENERATED_KEY + 144),
        '--start',
        str(CTINTERVAL_NUMBER_OF_GENERATED_KEY),
    )
    assert result.exit_code != 0
    assert 'outside of' in result.output


# -----------------------------------------------------------------------------
def test_gen_rpis():
    result = run(
        'gen-rpis',
        TEMPORARY_TRACING_KEY.hex(),
        '--start',
        str(CTINTERVAL_NUMBER_OF_GENERATED_KEY),
    )
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == len(ADVERTISED_DATA)
    for i, line in enumerate(lines):
        interval, rpi = line.split()
        assert int(interval) == CTINTERVAL_NUMBER_OF_GENERATED_KEY + i
        assert rpi == ADVERTISED_DATA[i].rpi.hex()


# -----------------------------------------------------------------------------
def test_encrypt_decrypt_aem():
    element = ADVERTISED_DATA[0]
    result = run('encrypt-aem', AEMK.hex(), element.rpi.hex(), BLE_METADATA.hex())
    assert result.exit_code == 0
    assert result.output.strip() == element.aem.hex()

    result = run('decrypt-aem', AEMK.hex(), element.rpi.hex(), element.aem.hex())
    assert result.exit_code == 0
    assert result.output.strip() == BLE_METADATA.hex()


# -----------------------------------------------------------------------------
def test_invalid_hex():
    result = run('gen-rpik', 'not-hex')
    assert result.exit_code != 0


# -----------------------------------------------------------------------------
def test_config_file(tmp_path):
    filename = tmp_path / 'config.json'
    filename.write_text(json.dumps({'aemk_info': 'EN-RPIK'}), encoding='utf-8')
    result = CliRunner().invoke(
        cli, ['--config', str(filename), 'gen-aemk', TEMPORARY_TRACING_KEY.hex()]
    )
    assert result.exit_code == 0
    assert result.output.strip() == RPIK.hex()


# -----------------------------------------------------------------------------
def test_invalid_key_sizes():
    result = run('gen-rpik', TEMPORARY_TRACING_KEY[:15].hex())
    assert result.exit_code != 0
    assert 'temporary_exposure_key' in result.output

    result = run('gen-aemk', (TEMPORARY_TRACING_KEY * 2).hex())
    assert result.exit_code != 0

    element = ADVERTISED_DATA[0]
    result = run('encrypt-aem', (AEMK * 2).hex(), element.rpi.hex(), '40080000')
    assert result.exit_code != 0
    assert 'aem_key' in result.output


# -----------------------------------------------------------------------------
def test_invalid_metadata_size():
    element = ADVERTISED_DATA[0]
    for metadata in ('400800', '4008000000'):
        result = run('encrypt-aem', AEMK.hex(), element.rpi.hex(), metadata)
        assert result.exit_code != 0
        assert 'metadata' in result.output

        result = run('decrypt-aem', AEMK.hex(), element.rpi.hex(), metadata)
        assert result.exit_code != 0
