# SPDX-License-Identifier: GPL-2.0-or-later
"""Drains a queue of matchups through match sessions.

Each matchup is popped from the queue exactly once and played by one
MatchSession. Whatever the outcome of a match, its directory is archived,
its result persisted and the queue advances. Result persistence is
serialized, so sessions can run concurrently without sharing anything
else.
"""

import asyncio
import collections
import dataclasses
import logging
import os.path
from typing import Dict

from ladder.errors import ArchiveError, EngineError
from ladder.runner.session import MatchSession
from ladder.scheduler.monitoring import (
    scheduler_archive_errors,
    scheduler_exception,
    scheduler_matches_total,
    scheduler_queue_size,
)
from ladder.types import GameResult, ResultType


def match_path(directory, match_id):
    match_id_high = "{:03}".format(match_id // 1000)
    match_id_low = "{:03}".format(match_id % 1000)
    return os.path.join(directory, match_id_high, match_id_low)


@dataclasses.dataclass
class RunSummary:
    succeeded: int = 0
    failed: int = 0
    results: Dict[int, GameResult] = dataclasses.field(default_factory=dict)

    @property
    def processed(self):
        return self.succeeded + self.failed


class Scheduler:
    def __init__(self, matchups, engine, runtimes, settings=None,
                 archiver=None, store=None, matches_dir=None, concurrency=1):
        self.queue = collections.deque(matchups)
        self.engine = engine
        self.runtimes = runtimes
        self.settings = settings
        self.archiver = archiver
        self.store = store
        self.matches_dir = matches_dir
        self.concurrency = max(1, concurrency)

        self.next_match_id = 1
        self.sessions = {}
        self.stopping = False
        self.summary = RunSummary()
        self.store_lock = None

        scheduler_queue_size.set_function(lambda: len(self.queue))

    def stop(self):
        """Stops taking matchups from the queue. Matches in progress are
        played to the end."""
        if not self.stopping:
            logging.info('stop requested, %d match(es) in progress, '
                         '%d left in the queue', len(self.sessions),
                         len(self.queue))
        self.stopping = True

    def abort(self):
        """Stops, and asks the matches in progress to stop as well."""
        self.stop()
        for session in self.sessions.values():
            session.cancel()

    async def run(self):
        """Plays matchups until the queue is empty or a stop is requested,
        and returns the RunSummary."""
        self.store_lock = asyncio.Lock()
        logging.info('%d matchup(s) to play, %d at a time', len(self.queue),
                     self.concurrency)
        await asyncio.gather(*(self.worker()
                               for _ in range(self.concurrency)))
        logging.info('done: %d match(es) played, %d failed',
                     self.summary.processed, self.summary.failed)
        return self.summary

    async def worker(self):
        while self.queue and not self.stopping:
            matchup = self.queue.popleft()
            match_id = self.next_match_id
            self.next_match_id += 1
            await self.play(match_id, matchup)

    async def play(self, match_id, matchup):
        match_dir = None
        if self.matches_dir is not None:
            match_dir = match_path(self.matches_dir, match_id)

        session = MatchSession(matchup, self.engine, self.runtimes,
                               settings=self.settings, match_dir=match_dir)
        self.sessions[match_id] = session
        try:
            result = await session.run()
        except EngineError as e:
            logging.error('match %s (%s): engine failure: %s', match_id,
                          matchup, e)
            result = self.error_result(matchup)
        except asyncio.CancelledError:
            raise
        except Exception:
            scheduler_exception.inc()
            logging.exception('match %s (%s) triggered an exception',
                              match_id, matchup)
            result = self.error_result(matchup)
        finally:
            del self.sessions[match_id]

        if self.archiver is not None and match_dir is not None:
            # Compressing blocks, other sessions keep polling meanwhile.
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, self.archiver.archive,
                                           match_id, matchup, match_dir)
            except ArchiveError as e:
                scheduler_archive_errors.inc()
                logging.error('match %s: %s', match_id, e)

        async with self.store_lock:
            await self.record(match_id, result)

    async def record(self, match_id, result):
        if result.result.failed:
            self.summary.failed += 1
        else:
            self.summary.succeeded += 1
        self.summary.results[match_id] = result
        scheduler_matches_total.labels(
            status='failed' if result.result.failed else 'played').inc()

        if self.store is None:
            return
        try:
            await self.store.save(match_id, result)
        except OSError as e:
            logging.error('cannot store result of match %s: %s', match_id, e)

    @staticmethod
    def error_result(matchup):
        return GameResult(result=ResultType.ERROR, bot1=matchup.bot1.name,
                          bot2=matchup.bot2.name, map=matchup.map)
