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

"""
Invoke tasks
"""

# -----------------------------------------------------------------------------
# Imports
# -----------------------------------------------------------------------------
import os

from invoke import task, call, Collection
from invoke.exceptions import UnexpectedExit


# -----------------------------------------------------------------------------
ROOT_DIR = os.path.dirname(os.path.realpath(__file__))
SOURCES = "exposure apps tasks.py"

ns = Collection()


# -----------------------------------------------------------------------------
@task
def build(ctx, install=False):
    if install:
        ctx.run("python -m pip install .[build]")
    ctx.run("python -m build")


# -----------------------------------------------------------------------------
@task(incrementable=["verbose"])
def test(ctx, match=None, install=False, verbose=0):
    if install:
        ctx.run("python -m pip install .[test]")

    args = f" -k '{match}'" if match is not None else ""
    if verbose > 0:
        args += f" -{'v' * verbose}"
    ctx.run(f"python -m pytest {os.path.join(ROOT_DIR, 'tests')}{args}")


# -----------------------------------------------------------------------------
def run_check(ctx, name, command):
    print(f">>> Running {name}...")
    try:
        ctx.run(command)
    except UnexpectedExit:
        print(f"Please fix the issues reported by {name}.")
        raise
    print(f">>> {name} done.")


# -----------------------------------------------------------------------------
@task
def lint(ctx, disable='C,R', errors_only=False):
    options = [f"--disable={disable}"] if disable else []
    if errors_only:
        options.append("-E")
    run_check(ctx, "pylint", f"pylint {' '.join(options)} {SOURCES}")


# -----------------------------------------------------------------------------
@task
def format_code(ctx, check=False):
    options = "--check --diff " if check else ""
    run_check(ctx, "black", f"black -S {options}exposure apps tests tasks.py")


# -----------------------------------------------------------------------------
@task
def check_types(ctx):
    run_check(ctx, "mypy", f"mypy {SOURCES}")


# -----------------------------------------------------------------------------
@task(
    pre=[
        call(format_code, check=True),
        call(lint, errors_only=True),
        check_types,
        test,
    ]
)
def pre_commit(_ctx):
    print("All good!")


# -----------------------------------------------------------------------------
ns.add_task(build)
ns.add_task(test)
ns.add_task(lint)
ns.add_task(format_code, name="format")
ns.add_task(check_types, name="type-check")
ns.add_task(pre_commit)
