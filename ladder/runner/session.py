# SPDX-License-Identifier: GPL-2.0-or-later
"""Runs one match from bot launch to teardown.

A session starts both bots, hands them to the engine and steps the engine
until one of the terminal exit cases is reached:

* GameEnd: the engine says the match is over;
* ClientRequestExit: a bot asked to leave the game;
* ClientTimeout: a bot stopped answering for longer than the client
  timeout, or crashed and the engine did not end the game within the crash
  grace period;
* GameTimeout: the simulation went past the maximum number of game loops.

While the engine steps, bots are watched every poll interval so that a hung
bot cannot stall the session. Whatever happens, both bots are killed and
the engine session closed before run() returns.
"""

import asyncio
import dataclasses
import logging
import os
import os.path
import time
from typing import Optional

from ladder.config import section
from ladder.errors import ConfigurationError, EngineError, LaunchError
from ladder.runner import process
from ladder.runner.classify import DOUBLE_FAULT_POLICIES, classify
from ladder.runner.engine import Participant
from ladder.runner.monitoring import (
    runner_match_duration,
    runner_results,
    runner_sessions,
)
from ladder.types import (
    SIDES,
    ExitCase,
    GameResult,
    GameState,
    ResultType,
    opponent,
)


@dataclasses.dataclass(frozen=True)
class SessionSettings:
    client_timeout: float = 60
    max_game_loops: int = 60480
    poll_interval: float = 0.5
    crash_grace: float = 5
    max_log_bytes: Optional[int] = 10 * 1024 * 1024
    double_fault: ResultType = ResultType.TIE

    @classmethod
    def from_config(cls, config):
        s = section(config, 'session')
        policy = s.get('double_fault', 'tie')
        try:
            double_fault = DOUBLE_FAULT_POLICIES[policy]
        except KeyError:
            raise ConfigurationError(
                'session.double_fault must be one of {}, got {!r}'.format(
                    sorted(DOUBLE_FAULT_POLICIES), policy)) from None
        return cls(
            client_timeout=s.get('client_timeout_secs', cls.client_timeout),
            max_game_loops=s.get('max_game_loops', cls.max_game_loops),
            poll_interval=s.get('poll_interval_secs', cls.poll_interval),
            crash_grace=s.get('crash_grace_secs', cls.crash_grace),
            max_log_bytes=s.get('max_log_bytes', cls.max_log_bytes),
            double_fault=double_fault,
        )


class MatchSession:
    def __init__(self, matchup, engine, runtimes, settings=None,
                 match_dir=None):
        self.matchup = matchup
        self.engine = engine
        self.runtimes = runtimes
        self.settings = settings or SessionSettings()
        self.match_dir = match_dir

        self.handles = {}
        self.engine_session = None
        self.state = GameState()
        self.exit_case = ExitCase.IN_PROGRESS
        self.failed_side = None
        # Sides whose bot exited while the engine still expected input.
        self.crashed = set()
        self.crash_deadline = None
        # Side blamed for a timeout or that asked to leave.
        self.culprit = None
        self.winner = None
        self.frame_totals = {side: 0.0 for side in SIDES}
        self.frame_counts = {side: 0 for side in SIDES}
        self.cancelled = False

    def cancel(self):
        """Requests the session to stop at the top of its next poll
        iteration. The match is then classified as an Error."""
        self.cancelled = True

    async def run(self):
        """Plays the match and returns its GameResult.

        Raises EngineError, after cleanup, when the engine is unreachable.
        """
        logging.info('match %s: starting', self.matchup)
        start = time.monotonic()
        runner_sessions.inc()
        try:
            result = await self._run()
        finally:
            await self.teardown()
            runner_sessions.dec()
            runner_match_duration.observe(max(time.monotonic() - start, 0))
        runner_results.labels(result=str(result.result)).inc()
        logging.info('match %s: %s (%s) after %s game loops', self.matchup,
                     result.result, result.exit_case, result.game_loop)
        return result

    async def _run(self):
        if self.match_dir is not None:
            os.makedirs(self.match_dir, exist_ok=True)

        for side in SIDES:
            try:
                self.handles[side] = await self.launch(side)
            except (LaunchError, ConfigurationError) as e:
                self.failed_side = side
                logging.error('match %s: cannot start side %s: %s',
                              self.matchup, side, e)
                return self.result(launch_failed=True)

        participants = [Participant(side, self.matchup.bot(side),
                                    self.handles[side]) for side in SIDES]
        try:
            self.engine_session = await self.engine.launch_match(
                participants, self.matchup.map, replay_dir=self.match_dir)
        except OSError as e:
            raise EngineError('cannot launch match: {}'.format(e)) from e

        # Bots are judged on their responsiveness from the start of the game,
        # not from the start of their process.
        for handle in self.handles.values():
            handle.touch()

        self.exit_case = await self.drive()
        if self.exit_case in (ExitCase.GAME_END,
                              ExitCase.CLIENT_REQUEST_EXIT):
            self.winner = await self.engine.winner(self.engine_session)
        return self.result()

    async def launch(self, side):
        bot = self.matchup.bot(side)
        extra_args = list(self.engine.connection_args(side, self.matchup))
        opponent_id = self.matchup.bot_id(opponent(side))
        if opponent_id:
            extra_args += ['--OpponentId', opponent_id]

        command = self.runtimes.command(bot, extra_args)
        agent = None
        if command is None:
            agent = self.runtimes.create_agent(bot)
        log_path = None
        if self.match_dir is not None:
            log_path = os.path.join(self.match_dir,
                                    '{}-{}.log'.format(side, bot.name))
        return await process.start(
            bot, command, agent=agent, checksum=self.matchup.checksum(side),
            log_path=log_path, max_log_bytes=self.settings.max_log_bytes)

    async def drive(self):
        """Steps the engine until a terminal exit case is reached."""
        step = None
        try:
            while True:
                if self.cancelled:
                    logging.warning('match %s: aborted', self.matchup)
                    return ExitCase.IN_PROGRESS

                if step is None:
                    step = asyncio.ensure_future(
                        self.engine.advance(self.engine_session))
                    step_started = time.monotonic()
                done, _ = await asyncio.wait(
                    {step}, timeout=self.settings.poll_interval)
                if done:
                    continues = step.result()
                    step = None
                    exit_case = await self.observe(continues)
                    if exit_case.terminal:
                        return exit_case

                exit_case = self.check_participants()
                if exit_case.terminal:
                    return exit_case

                # The engine waits on a bot that answers nobody, even if
                # that bot looks alive and active to us.
                if (step is not None and time.monotonic() - step_started
                        > self.settings.client_timeout):
                    self.culprit = self.blame(
                        [side for side in SIDES if side not in self.crashed])
                    logging.warning('match %s: engine step stuck for %ss, '
                                    'blaming %s', self.matchup,
                                    self.settings.client_timeout,
                                    self.culprit)
                    return ExitCase.CLIENT_TIMEOUT
        finally:
            if step is not None:
                step.cancel()

    async def observe(self, continues):
        """Reads the engine state after a step."""
        state = await self.engine.read_state(self.engine_session)
        self.state = state
        for side, frame_time in zip(SIDES, state.frame_times):
            if frame_time is None:
                continue
            self.frame_totals[side] += frame_time
            self.frame_counts[side] += 1
            self.handles[side].touch()

        if state.left in SIDES:
            self.culprit = state.left
            logging.info('match %s: side %s asked to leave', self.matchup,
                         state.left)
            return ExitCase.CLIENT_REQUEST_EXIT
        if not continues or not state.in_game:
            return ExitCase.GAME_END
        if state.game_loop > self.settings.max_game_loops:
            logging.warning('match %s: game loop %s is over the limit',
                            self.matchup, state.game_loop)
            return ExitCase.GAME_TIMEOUT
        return ExitCase.IN_PROGRESS

    def check_participants(self):
        """Looks for crashed and silent bots."""
        now = time.monotonic()
        for side in SIDES:
            handle = self.handles[side]
            if side in self.crashed or handle.is_alive():
                continue
            self.crashed.add(side)
            logging.warning('match %s: %s exited during the game (code %s)',
                            self.matchup, handle.bot,
                            getattr(handle, 'returncode', None))
            if self.crash_deadline is None:
                self.crash_deadline = now + self.settings.crash_grace

        if len(self.crashed) == len(SIDES):
            return ExitCase.CLIENT_TIMEOUT
        if self.crashed and now >= self.crash_deadline:
            (self.culprit,) = self.crashed
            return ExitCase.CLIENT_TIMEOUT

        silent = [side for side in SIDES if side not in self.crashed
                  and self.handles[side].silence()
                  > self.settings.client_timeout]
        if silent:
            self.culprit = self.blame(silent)
            logging.warning('match %s: no answer from side(s) %s, blaming %s',
                            self.matchup, silent, self.culprit)
            return ExitCase.CLIENT_TIMEOUT
        return ExitCase.IN_PROGRESS

    def blame(self, silent):
        """Picks the side responsible for a timeout among the silent ones.

        When both are silent, the slowest one on average is blamed; with no
        difference nobody is.
        """
        if len(silent) == 1:
            return silent[0]
        averages = {side: self.avg_frame(side) for side in silent}
        slowest = max(averages, key=averages.get)
        if list(averages.values()).count(averages[slowest]) > 1:
            return None
        return slowest

    def avg_frame(self, side):
        if not self.frame_counts[side]:
            return 0.0
        return self.frame_totals[side] / self.frame_counts[side]

    def result(self, launch_failed=False):
        alive = tuple(side not in self.crashed for side in SIDES)
        return GameResult(
            result=classify(self.exit_case, alive, winner=self.winner,
                            culprit=self.culprit,
                            launch_failed=launch_failed,
                            double_fault=self.settings.double_fault),
            bot1_avg_frame=self.avg_frame(1),
            bot2_avg_frame=self.avg_frame(2),
            game_loop=max(self.state.game_loop, 0),
            exit_case=self.exit_case,
            bot1=self.matchup.bot1.name,
            bot2=self.matchup.bot2.name,
            map=self.matchup.map,
        )

    async def teardown(self):
        """Kills every started bot and closes the engine session."""
        handles = list(self.handles.values())
        kills = await asyncio.gather(*(h.kill() for h in handles),
                                     return_exceptions=True)
        for handle, error in zip(handles, kills):
            if isinstance(error, Exception):
                logging.error('match %s: cannot kill %s: %s', self.matchup,
                              handle, error)
        if self.engine_session is not None:
            try:
                await self.engine.close(self.engine_session)
            except (EngineError, OSError) as e:
                logging.error('match %s: cannot close engine session: %s',
                              self.matchup, e)
