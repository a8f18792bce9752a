# SPDX-License-Identifier: GPL-2.0-or-later

import os

import logging
import logging.handlers


# Do not log to stderr if started by init
LOG_STDERR = os.getppid() != 1
SYSLOG_SOCKET = '/dev/log'


def setup_logging(program, verbose=False, local=LOG_STDERR):
    """Sets up the default Python logger.

    Log to syslog when the local socket exists, optionaly log to stderr.

    Args:
      program: Name of the program logging informations.
      verbose: If true, log more messages (DEBUG instead of INFO).
      local: If true, log to stderr as well as syslog.
    """
    handlers = []
    if os.path.exists(SYSLOG_SOCKET):
        syslog = logging.handlers.SysLogHandler(SYSLOG_SOCKET)
        syslog.setFormatter(logging.Formatter(
            program + ': [%(levelname)s] %(message)s'
        ))
        handlers.append(syslog)
    if local or not handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(
            '%(asctime)s: ' + program + ': [%(levelname)s] %(message)s',
            datefmt='%d-%m-%Y %H-%M-%S',
        ))
        handlers.append(stream)
    for handler in handlers:
        logging.getLogger('').addHandler(handler)
    logging.getLogger('').setLevel(logging.DEBUG if verbose else logging.INFO)
