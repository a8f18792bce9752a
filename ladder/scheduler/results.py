# SPDX-License-Identifier: GPL-2.0-or-later

import asyncio
import logging

import aiohttp
import yaml


class ResultStore:
    """Persists match results.

    Results are appended as YAML documents to `path`, and also submitted as
    JSON to `url` when one is configured. Callers serialize calls to save().
    """

    def __init__(self, path=None, url=None):
        self.path = path
        self.url = url

    @classmethod
    def from_config(cls, config):
        s = config.get('results') or {}
        return cls(path=s.get('path'), url=s.get('url'))

    async def save(self, match_id, result):
        record = {'MatchId': match_id, **result.as_dict()}
        if self.path is not None:
            with open(self.path, 'a') as f:
                yaml.safe_dump(record, f, explicit_start=True,
                               default_flow_style=False)
        if self.url is not None:
            await self.submit(record)

    async def submit(self, record):
        try:
            async with aiohttp.ClientSession() as client:
                async with client.post(self.url, json=record) as resp:
                    resp.raise_for_status()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logging.error('cannot submit result of match %s to <%s>: %s',
                          record['MatchId'], self.url, e)


def read_results(path):
    """Returns the results stored in `path`."""
    with open(path, 'r') as f:
        return [r for r in yaml.safe_load_all(f) if isinstance(r, dict)]
