# SPDX-License-Identifier: GPL-2.0-or-later
"""Boundary with the external game engine.

The engine registers participants, loads the map, steps the simulation and
knows the score. The ladder only consumes it through the Engine interface;
a concrete engine is plugged in through the `engine.factory` configuration
key, a "module:callable" path called with the whole configuration.
"""

import dataclasses
import importlib
from typing import Any

from ladder.errors import ConfigurationError
from ladder.types import BotConfig


@dataclasses.dataclass(frozen=True)
class Participant:
    side: int
    bot: BotConfig
    handle: Any

    @property
    def agent(self):
        """The in-process agent, None for external processes."""
        return getattr(self.handle, 'agent', None)


class Engine:
    """Interface of a game engine. All methods raise EngineError when the
    engine cannot be reached."""

    def connection_args(self, side, matchup):
        """Extra command line arguments telling the bot of `side` how to
        reach the engine."""
        return []

    async def launch_match(self, participants, map_name, replay_dir=None):
        """Registers both participants, loads the map and returns an opaque
        session handle."""
        raise NotImplementedError

    async def advance(self, session):
        """Steps the simulation, returns whether the match continues."""
        raise NotImplementedError

    async def read_state(self, session):
        """Returns the current GameState."""
        raise NotImplementedError

    async def winner(self, session):
        """Returns the winning side, None when there is none."""
        raise NotImplementedError

    async def close(self, session):
        """Releases the session, called once on every exit path."""
        pass


def load_engine(config):
    path = (config.get('engine') or {}).get('factory')
    if not path:
        raise ConfigurationError('engine.factory is not configured')
    module_name, sep, attr = path.partition(':')
    if not sep:
        raise ConfigurationError(
            'engine.factory must look like "module:callable", got {!r}'
            .format(path))
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError('cannot load engine {}: {}'.format(path, e))
    return factory(config)
