# SPDX-License-Identifier: GPL-2.0-or-later
"""Exceptions raised while preparing and running matches.

Participant failures (crashes, timeouts, voluntary exits) are not errors:
they are regular match outcomes and never show up here.
"""


class LadderError(Exception):
    """Base class for all exceptions here."""

    pass


class ConfigurationError(LadderError):
    """Raised when the configuration describes something we cannot run,
    e.g. an unknown runtime kind or a matchup naming an unknown bot.
    """

    pass


class LaunchError(LadderError):
    """Raised when a bot process cannot be started."""

    def __init__(self, bot, message):
        self.bot = bot
        self.message = message
        super().__init__(bot, message)

    def __str__(self):
        return '{}: {}'.format(self.bot, self.message)


class ChecksumMismatch(LaunchError):
    """Raised when a bot artifact does not match its declared checksum."""

    def __init__(self, bot, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(
            bot, 'checksum mismatch (expected {}, got {})'.format(
                expected, actual))


class EngineError(LadderError):
    """Raised when the game engine cannot be reached or fails on its own."""

    pass


class ArchiveError(LadderError):
    pass


class MatchupSourceError(LadderError):
    """Raised when no matchup list can be retrieved."""

    pass
