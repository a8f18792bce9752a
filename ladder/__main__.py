# SPDX-License-Identifier: GPL-2.0-or-later
import asyncio
import logging
import optparse
import signal
import sys

import ladder.config
import ladder.log

from ladder.config import section
from ladder.errors import ConfigurationError, LadderError
from ladder.runner.engine import load_engine
from ladder.runner.runtimes import AgentRegistry, RuntimeRegistry
from ladder.runner.session import SessionSettings
from ladder.scheduler.archive import Archiver
from ladder.scheduler.matchups import MatchupSource, load_bots
from ladder.scheduler.monitoring import DEFAULT_PORT, monitoring_start
from ladder.scheduler.results import ResultStore
from ladder.scheduler.scheduler import Scheduler


def load_agents(config):
    agents = AgentRegistry()
    for module in section(config, 'agents').get('modules') or []:
        registration = agents.register_module(module)
        if not registration.ok:
            raise ConfigurationError(
                'agent module {} does not provide {}'.format(
                    registration.module, ', '.join(registration.missing)))
        logging.info('registered built-in agent %s from %s',
                     registration.name, registration.module)
    return agents


def make_scheduler(config, matchups):
    paths = section(config, 'paths')
    archiver = Archiver(paths['archives']) if paths.get('archives') else None
    return Scheduler(
        matchups,
        load_engine(config),
        RuntimeRegistry.from_config(config, load_agents(config)),
        settings=SessionSettings.from_config(config),
        archiver=archiver,
        store=ResultStore.from_config(config),
        matches_dir=paths.get('matches'),
        concurrency=section(config, 'scheduler').get('concurrency', 1),
    )


async def run(config):
    """Plays every matchup of the configured source. Returns whether the
    whole queue was processed."""
    bots = load_bots(config)
    matchups = await MatchupSource.from_config(config, bots).fetch()
    scheduler = make_scheduler(config, matchups)

    # First signal: finish the matches in progress, second: abort them.
    def interrupt():
        if scheduler.stopping:
            scheduler.abort()
        else:
            scheduler.stop()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, interrupt)

    summary = await scheduler.run()
    return summary.processed == len(matchups)


def main():
    parser = optparse.OptionParser()
    parser.add_option('-l', '--local-logging', action='store_true',
                      dest='local_logging', default=False,
                      help='Activate logging to stderr.')
    parser.add_option('-v', '--verbose', action='store_true',
                      dest='verbose', default=False,
                      help='Verbose mode.')
    parser.add_option('-p', '--profile', dest='profile', default='ladder',
                      help='Configuration profile to load.')
    options, args = parser.parse_args()

    ladder.log.setup_logging('ladder', verbose=options.verbose,
                             local=options.local_logging)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    try:
        config = ladder.config.load(options.profile)
        monitoring_start(section(config, 'monitoring').get('port',
                                                           DEFAULT_PORT))
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            complete = loop.run_until_complete(run(config))
        finally:
            loop.close()
    except LadderError as e:
        logging.error('%s', e)
        return 2
    return 0 if complete else 1


if __name__ == '__main__':
    sys.exit(main())
