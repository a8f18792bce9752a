# SPDX-License-Identifier: GPL-2.0-or-later
"""Supervision of a single bot.

A bot is either an external process (BotProcess) or an agent living in
this process (InProcessBot). Both expose the same handle interface:
is_alive(), touch(), silence() and kill(). kill() is idempotent and only
returns once the process has been reaped.

Activity is whatever the session reports through touch(), i.e. answers
seen by the engine. What a bot prints only goes to its log.
"""

import asyncio
import contextlib
import logging
import os
import os.path
import signal
import time

from ladder.errors import ChecksumMismatch, LaunchError
from ladder.runner import tools
from ladder.runner.monitoring import runner_bot_kills, runner_launch_errors

TRUNCATE_MESSAGE = b'\n[log truncated]\n'
READ_CHUNK = 4096
# Time given to the output reader to drain once the process is dead.
DRAIN_TIMEOUT = 5


class BotProcess:
    def __init__(self, bot, command, log_path=None, max_log_bytes=None):
        self.bot = bot
        self.command = command
        self.log_path = log_path
        self.max_log_bytes = max_log_bytes
        self.proc = None
        self.start_time = None
        self.last_activity = None
        self.killed = False
        self._reader = None

    @property
    def pid(self):
        return self.proc.pid if self.proc is not None else None

    @property
    def returncode(self):
        return self.proc.returncode if self.proc is not None else None

    async def start(self):
        if not os.path.isfile(self.bot.entry_path):
            raise LaunchError(self.bot, 'entry file {} does not exist'
                              .format(self.bot.entry_path))
        if not os.path.isdir(self.command.cwd):
            raise LaunchError(self.bot, 'working directory {} does not exist'
                              .format(self.command.cwd))
        try:
            log = open(self.log_path, 'wb') if self.log_path else None
        except OSError as e:
            raise LaunchError(self.bot, 'cannot open log file: {}'.format(e))
        try:
            self.proc = await tools.create_process(self.command.cmdline,
                                                   cwd=self.command.cwd)
        except OSError as e:
            if log is not None:
                log.close()
            raise LaunchError(self.bot, 'cannot execute {}: {}'.format(
                self.command.program, e))
        self.start_time = self.last_activity = time.monotonic()
        self._reader = asyncio.ensure_future(self._read_output(log))
        logging.info('started %s (pid %s): %s', self.bot, self.proc.pid,
                     ' '.join(self.command.cmdline))

    async def _read_output(self, log):
        written = 0
        try:
            while True:
                chunk = await self.proc.stdout.read(READ_CHUNK)
                if not chunk:
                    break
                if log is None:
                    continue
                if self.max_log_bytes is not None:
                    left = self.max_log_bytes - written
                    if left <= 0:
                        continue
                    if len(chunk) >= left:
                        chunk = chunk[:left] + TRUNCATE_MESSAGE
                written += len(chunk)
                log.write(chunk)
                log.flush()
        finally:
            if log is not None:
                log.close()

    def is_alive(self):
        return self.proc is not None and self.proc.returncode is None

    def touch(self):
        """Records activity from the bot."""
        self.last_activity = time.monotonic()

    def silence(self):
        """Seconds elapsed since the last activity of the bot."""
        return time.monotonic() - self.last_activity

    async def kill(self):
        if self.proc is None or self.killed:
            return
        self.killed = True
        if self.proc.returncode is None:
            runner_bot_kills.inc()
            logging.info('killing %s (pid %s)', self.bot, self.proc.pid)
        # Kill the whole session, the bot may have been started by a wrapper
        # that outlives it or the other way around.
        with contextlib.suppress(ProcessLookupError):
            os.killpg(self.proc.pid, signal.SIGKILL)
        await self.proc.wait()
        try:
            await asyncio.wait_for(self._reader, timeout=DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logging.warning('output of %s still open after it was killed',
                            self.bot)

    def __repr__(self):
        return '<BotProcess: {} pid={}>'.format(self.bot, self.pid)


class InProcessBot:
    """Handle of a bot that runs inside the engine. It has no process: it
    stays alive and active until the match ends."""

    def __init__(self, bot, agent):
        self.bot = bot
        self.agent = agent
        self.killed = False
        self.start_time = self.last_activity = time.monotonic()

    def is_alive(self):
        return not self.killed

    def touch(self):
        self.last_activity = time.monotonic()

    def silence(self):
        return 0.0

    async def kill(self):
        self.killed = True

    def __repr__(self):
        return '<InProcessBot: {}>'.format(self.bot)


def verify_checksum(bot, checksum):
    """Raises ChecksumMismatch unless the bot entry file matches
    `checksum`."""
    algorithm, expected = tools.parse_checksum(checksum)
    try:
        actual = tools.file_checksum(bot.entry_path, algorithm)
    except ValueError:
        raise LaunchError(bot, 'unknown checksum algorithm {!r}'
                          .format(algorithm))
    except OSError as e:
        raise LaunchError(bot, 'cannot checksum {}: {}'
                          .format(bot.entry_path, e))
    if actual != expected:
        raise ChecksumMismatch(bot, expected, actual)


async def start(bot, command, agent=None, checksum=None, log_path=None,
                max_log_bytes=None):
    """Starts `bot` and returns its handle.

    `command` is None for bots running in-process, in which case `agent` is
    handed over as is. Raises LaunchError when the bot cannot be started.
    """
    try:
        if checksum:
            verify_checksum(bot, checksum)
        if command is None:
            return InProcessBot(bot, agent)
        handle = BotProcess(bot, command, log_path=log_path,
                            max_log_bytes=max_log_bytes)
        await handle.start()
        return handle
    except LaunchError:
        runner_launch_errors.inc()
        raise
