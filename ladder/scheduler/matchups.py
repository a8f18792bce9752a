# SPDX-License-Identifier: GPL-2.0-or-later
"""Where matchups come from.

A matchup list is either a local file, one matchup per line::

    # comment
    "BotA"vs"BotB" TestMapLE.SC2Map

or a remote endpoint answering a JSON list of::

    {"Bot1": {"name": "BotA", "id": "12", "checksum": "..."},
     "Bot2": {"name": "BotB", "id": "13", "checksum": "..."},
     "Map": "TestMapLE.SC2Map"}

Both end up as a list of Matchup. Bots are looked up by name in the bots
configuration; matchups naming unknown or disabled bots are skipped.
"""

import asyncio
import logging
import os.path
import re

import aiohttp

from ladder.config import load_file, section
from ladder.errors import ConfigurationError, MatchupSourceError
from ladder.types import BotConfig, Matchup, MatchupListType

MATCHUP_RE = re.compile(
    r'^"(?P<bot1>[^"]+)"\s*vs\s*"(?P<bot2>[^"]+)"\s+(?P<map>\S+)$')


def load_bots(config):
    """Returns the configured bots, by name."""
    bots = config.get('bots')
    if bots is None and config.get('bots_file'):
        bots = load_file(config['bots_file'])
    if not bots:
        raise ConfigurationError('no bot configured')
    return {name: BotConfig.from_dict(name, d or {})
            for name, d in bots.items()}


def make_matchup(bots, bot1, bot2, map_name, bot1_id='', bot1_checksum='',
                 bot2_id='', bot2_checksum=''):
    """Returns a Matchup, or None when it cannot be played."""
    configs = []
    for name in (bot1, bot2):
        bot = bots.get(name)
        if bot is None:
            logging.warning('skipping matchup %s vs %s: unknown bot %s',
                            bot1, bot2, name)
            return None
        if not bot.enabled:
            logging.warning('skipping matchup %s vs %s: %s is disabled',
                            bot1, bot2, name)
            return None
        configs.append(bot)
    return Matchup(configs[0], configs[1], map_name,
                   bot1_id=bot1_id or configs[0].player_id,
                   bot1_checksum=bot1_checksum,
                   bot2_id=bot2_id or configs[1].player_id,
                   bot2_checksum=bot2_checksum)


def parse_matchup_lines(lines, bots):
    matchups = []
    for lineno, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        m = MATCHUP_RE.match(line)
        if m is None:
            logging.warning('ignoring malformed matchup line %s: %r',
                            lineno, line)
            continue
        matchup = make_matchup(bots, m.group('bot1'), m.group('bot2'),
                               m.group('map'))
        if matchup is not None:
            matchups.append(matchup)
    return matchups


def read_matchup_file(path, bots):
    try:
        with open(path, 'r') as f:
            return parse_matchup_lines(f, bots)
    except OSError as e:
        raise MatchupSourceError('cannot read {}: {}'.format(path, e))


def parse_remote_matchups(data, bots):
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise MatchupSourceError('unexpected matchup list: {!r}'.format(data))
    matchups = []
    for entry in data:
        try:
            bot1, bot2 = entry['Bot1'], entry['Bot2']
            matchup = make_matchup(
                bots, bot1['name'], bot2['name'], entry['Map'],
                bot1_id=str(bot1.get('id', '')),
                bot1_checksum=bot1.get('checksum', '') or '',
                bot2_id=str(bot2.get('id', '')),
                bot2_checksum=bot2.get('checksum', '') or '')
        except (KeyError, TypeError, AttributeError):
            logging.warning('ignoring malformed remote matchup: %r', entry)
            continue
        if matchup is not None:
            matchups.append(matchup)
    return matchups


async def fetch_remote_matchups(url, bots, *, max_retries=0, retry_delay=5):
    for i in range(max_retries + 1):
        try:
            async with aiohttp.ClientSession() as client:
                async with client.get(url) as resp:
                    resp.raise_for_status()
                    data = await resp.json(content_type=None)
            return parse_remote_matchups(data, bots)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            if i < max_retries:
                logging.warning('<%s> unavailable (%s). Retrying in %ss...',
                                url, e, retry_delay)
                await asyncio.sleep(retry_delay)
            else:
                raise MatchupSourceError(
                    'cannot fetch matchups from {}: {}'.format(url, e))


class MatchupSource:
    def __init__(self, list_type, bots, path=None, url=None, max_retries=3,
                 retry_delay=5):
        self.list_type = list_type
        self.bots = bots
        self.path = path
        self.url = url
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @classmethod
    def from_config(cls, config, bots):
        s = section(config, 'matchups')
        list_type = MatchupListType.from_string(s.get('type'))
        if list_type is MatchupListType.NONE:
            raise ConfigurationError(
                'matchups.type must be "file" or "url", got {!r}'
                .format(s.get('type')))
        return cls(list_type, bots, path=s.get('path'), url=s.get('url'),
                   max_retries=s.get('retries', 3),
                   retry_delay=s.get('retry_delay', 5))

    async def fetch(self):
        """Returns the list of matchups to play.

        A remote list that cannot be fetched falls back on the local file,
        when there is one.
        """
        if self.list_type is MatchupListType.URL:
            try:
                return await fetch_remote_matchups(
                    self.url, self.bots, max_retries=self.max_retries,
                    retry_delay=self.retry_delay)
            except MatchupSourceError:
                if not (self.path and os.path.exists(self.path)):
                    raise
                logging.exception('remote matchup list unavailable, '
                                  'falling back on %s', self.path)
        return read_matchup_file(self.path, self.bots)
