# SPDX-License-Identifier: GPL-2.0-or-later
"""Data model shared by the match runner and the scheduler.

Sides are numbered 1 and 2, in matchup order.
"""

import dataclasses
import datetime
import enum
import os.path
from typing import Optional, Tuple

from ladder.errors import ConfigurationError

SIDES = (1, 2)


def opponent(side: int) -> int:
    return 3 - side


class RuntimeKind(enum.Enum):
    """Execution environment a bot requires."""

    BINARY_CPP = 'binarycpp'
    COMMAND_CENTER = 'commandcenter'
    PYTHON = 'python'
    WINE = 'wine'
    MONO = 'mono'
    DOTNET_CORE = 'dotnetcore'
    JAVA = 'java'
    NODEJS = 'nodejs'
    COMPUTER = 'computer'
    SKELETON = 'skeleton'

    @classmethod
    def from_string(cls, name):
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ConfigurationError(
                'unknown runtime kind: {!r}'.format(name)) from None


class Race(enum.Enum):
    TERRAN = 'Terran'
    PROTOSS = 'Protoss'
    ZERG = 'Zerg'
    RANDOM = 'Random'

    @classmethod
    def from_string(cls, name):
        for race in cls:
            if race.value.lower() == (name or '').strip().lower():
                return race
        return cls.RANDOM

    def __str__(self):
        return self.value


class Difficulty(enum.Enum):
    """Strength of engine-native opponents, ordered from weakest."""

    VERY_EASY = 'VeryEasy'
    EASY = 'Easy'
    MEDIUM = 'Medium'
    MEDIUM_HARD = 'MediumHard'
    HARD = 'Hard'
    HARD_VERY_HARD = 'HardVeryHard'
    VERY_HARD = 'VeryHard'
    CHEAT_VISION = 'CheatVision'
    CHEAT_MONEY = 'CheatMoney'
    CHEAT_INSANE = 'CheatInsane'

    @classmethod
    def from_string(cls, name):
        for difficulty in cls:
            if difficulty.value.lower() == (name or '').strip().lower():
                return difficulty
        return cls.EASY

    def __str__(self):
        return self.value


class ResultType(enum.Enum):
    INITIALIZATION_ERROR = 'InitializationError'
    TIMEOUT = 'Timeout'
    PLAYER1_WIN = 'Player1Win'
    PLAYER1_CRASH = 'Player1Crash'
    PLAYER2_WIN = 'Player2Win'
    PLAYER2_CRASH = 'Player2Crash'
    TIE = 'Tie'
    ERROR = 'Error'

    @classmethod
    def win(cls, side):
        return cls.PLAYER1_WIN if side == 1 else cls.PLAYER2_WIN

    @classmethod
    def crash(cls, side):
        return cls.PLAYER1_CRASH if side == 1 else cls.PLAYER2_CRASH

    @classmethod
    def from_string(cls, name):
        try:
            return cls(name)
        except ValueError:
            return cls.ERROR

    @property
    def failed(self):
        """Whether the match could not be played or judged at all."""
        return self in (ResultType.INITIALIZATION_ERROR, ResultType.ERROR)

    def __str__(self):
        return self.value


class ExitCase(enum.Enum):
    """Why a match session stopped. IN_PROGRESS is the only non-terminal
    case."""

    IN_PROGRESS = 'InProgress'
    GAME_END = 'GameEnd'
    CLIENT_REQUEST_EXIT = 'ClientRequestExit'
    CLIENT_TIMEOUT = 'ClientTimeout'
    GAME_TIMEOUT = 'GameTimeout'

    @property
    def terminal(self):
        return self is not ExitCase.IN_PROGRESS

    def __str__(self):
        return self.value


class MatchupListType(enum.Enum):
    FILE = 'file'
    URL = 'url'
    NONE = 'none'

    @classmethod
    def from_string(cls, name):
        try:
            return cls((name or '').strip().lower())
        except ValueError:
            return cls.NONE


def remove_map_extension(filename):
    """Returns a map file name without its last extension."""
    return os.path.splitext(filename)[0]


@dataclasses.dataclass(frozen=True, eq=False)
class BotConfig:
    """Identity and launch recipe of one bot.

    Two configurations are the same bot iff their names are equal.

    `skeleton` marks a placeholder without decision logic, used to test the
    plumbing. It changes nothing about how the bot is started: skeleton
    bots go through the launch recipe of their declared kind.
    """

    name: str
    type: RuntimeKind = RuntimeKind.BINARY_CPP
    root_path: str = ''
    file_name: str = ''
    race: Race = Race.RANDOM
    # Only meaningful for built-in agents.
    difficulty: Difficulty = Difficulty.EASY
    args: str = ''
    player_id: str = ''
    debug: bool = False
    enabled: bool = True
    skeleton: bool = False
    # Opaque, passed through.
    elo: int = 0

    @classmethod
    def from_dict(cls, name, d):
        """Builds a configuration from its `bots` configuration entry."""
        return cls(
            name=name,
            type=RuntimeKind.from_string(d.get('type', 'binarycpp')),
            root_path=d.get('path', ''),
            file_name=d.get('file', ''),
            race=Race.from_string(d.get('race')),
            difficulty=Difficulty.from_string(d.get('difficulty')),
            args=d.get('args', '') or '',
            player_id=str(d.get('id', '') or ''),
            debug=bool(d.get('debug', False)),
            enabled=bool(d.get('enabled', True)),
            skeleton=bool(d.get('skeleton', False)),
            elo=d.get('elo', 0),
        )

    @property
    def working_dir(self):
        """Absolute root directory of the bot, relative paths being taken
        from the current directory."""
        return os.path.abspath(self.root_path or '.')

    @property
    def entry_path(self):
        return os.path.join(self.working_dir, self.file_name)

    def __eq__(self, other):
        if not isinstance(other, BotConfig):
            return NotImplemented
        return self.name == other.name

    def __hash__(self):
        return hash(self.name)

    def __str__(self):
        return self.name


@dataclasses.dataclass(frozen=True)
class Matchup:
    """Two bots and the map they play on."""

    bot1: BotConfig
    bot2: BotConfig
    map: str
    bot1_id: str = ''
    bot1_checksum: str = ''
    bot2_id: str = ''
    bot2_checksum: str = ''

    def bot(self, side):
        return self.bot1 if side == 1 else self.bot2

    def bot_id(self, side):
        return self.bot1_id if side == 1 else self.bot2_id

    def checksum(self, side):
        return self.bot1_checksum if side == 1 else self.bot2_checksum

    def __str__(self):
        return '{} vs {} on {}'.format(
            self.bot1, self.bot2, remove_map_extension(self.map))


@dataclasses.dataclass(frozen=True)
class GameState:
    """Snapshot polled from the engine after each step.

    `frame_times` holds, per side, the time that side spent on the last
    step, or None when it has not answered. `left` is the side that asked
    to leave the game, if any.
    """

    in_game: bool = True
    game_loop: int = -1
    score: float = -1.0
    frame_times: Tuple[Optional[float], Optional[float]] = (None, None)
    left: Optional[int] = None


def timestamp():
    return datetime.datetime.now().strftime('%d-%m-%Y %H-%M-%S')


@dataclasses.dataclass(frozen=True)
class GameResult:
    result: ResultType = ResultType.INITIALIZATION_ERROR
    bot1_avg_frame: float = 0.0
    bot2_avg_frame: float = 0.0
    game_loop: int = 0
    timestamp: str = dataclasses.field(default_factory=timestamp)
    exit_case: ExitCase = ExitCase.IN_PROGRESS
    bot1: str = ''
    bot2: str = ''
    map: str = ''

    def as_dict(self):
        return {
            'Bot1': self.bot1,
            'Bot2': self.bot2,
            'Map': self.map,
            'Result': str(self.result),
            'ExitCase': str(self.exit_case),
            'Bot1AvgFrame': self.bot1_avg_frame,
            'Bot2AvgFrame': self.bot2_avg_frame,
            'GameLoop': self.game_loop,
            'TimeStamp': self.timestamp,
        }
