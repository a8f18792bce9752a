# SPDX-License-Identifier: GPL-2.0-or-later

import contextlib
import logging
import os
import os.path
import tarfile

from ladder.errors import ArchiveError
from ladder.types import remove_map_extension


def tar(path, dest, compression='gz'):
    with tarfile.open(dest, mode='w:' + compression) as tar:
        tar.add(path, arcname=os.path.basename(path))


def archive_name(match_id, matchup):
    return '{}-{}-vs-{}-{}.tar.gz'.format(
        match_id, matchup.bot1.name, matchup.bot2.name,
        remove_map_extension(matchup.map))


class Archiver:
    """Packs the working directory of a match (replays and bot logs).

    archive() blocks on disk and compression, the scheduler runs it in an
    executor.
    """

    def __init__(self, directory):
        self.directory = directory

    def archive(self, match_id, matchup, replay_dir):
        """Returns the path of the archive of `replay_dir`.

        Raises ArchiveError when it cannot be written.
        """
        if not os.path.isdir(replay_dir):
            raise ArchiveError('{} does not exist'.format(replay_dir))
        path = os.path.join(self.directory, archive_name(match_id, matchup))
        try:
            os.makedirs(self.directory, exist_ok=True)
            tar(replay_dir, path)
        except (OSError, tarfile.TarError) as e:
            with contextlib.suppress(OSError):
                os.unlink(path)
            raise ArchiveError('cannot archive {}: {}'.format(replay_dir, e))
        logging.debug('match %s archived to %s', match_id, path)
        return path
