# SPDX-License-Identifier: GPL-2.0-or-later

import asyncio
import hashlib
import shlex
import subprocess

DEFAULT_CHECKSUM_ALGORITHM = 'md5'


async def create_process(cmdline, **kwargs):
    """Starts `cmdline` in its own session, stdout and stderr merged.

    The new session lets the whole process group be killed, which matters
    for bots started through a wrapper (wine, java, ...).
    """
    return (await asyncio.create_subprocess_exec(
        *cmdline,
        stdin=subprocess.DEVNULL, stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT, start_new_session=True, **kwargs))


def split_args(args):
    return shlex.split(args) if args else []


def parse_checksum(checksum):
    """Splits an optional "algorithm:" prefix off a declared checksum."""
    algorithm, sep, digest = checksum.partition(':')
    if not sep:
        return DEFAULT_CHECKSUM_ALGORITHM, checksum.strip().lower()
    return algorithm.strip().lower(), digest.strip().lower()


def file_checksum(path, algorithm=DEFAULT_CHECKSUM_ALGORITHM):
    h = hashlib.new(algorithm)
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(65536), b''):
            h.update(chunk)
    return h.hexdigest()
