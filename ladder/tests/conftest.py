import os
import sys

import pytest

from ladder.runner.runtimes import RuntimeRegistry
from ladder.runner.session import SessionSettings
from ladder.types import BotConfig, RuntimeKind

from .fakes import FakeEngine

PYTHON_BOTS = {
    'loop': '''\
import time
while True:
    print('tick', flush=True)
    time.sleep(0.05)
''',
    'silent': '''\
import time
time.sleep(3600)
''',
    'crash': '''\
import sys
print('giving up', flush=True)
sys.exit(3)
''',
}

SHELL_BOTS = {
    'loop': '''\
#!/bin/sh
while true; do echo tick; sleep 0.05; done
''',
    'silent': '''\
#!/bin/sh
exec sleep 3600
''',
    'crash': '''\
#!/bin/sh
exit 3
''',
}


@pytest.fixture
def ladderconf(mocker):
    """Mocks :func:`ladder.config.load` for a given profile.

    Usage to provide the "ladder" profile with one "foo" config key::

        def test_something(ladderconf):
            ladderconf("ladder", foo="bar")
            ...
    """
    config_registry = {}

    def mocked_loader(profile):
        try:
            return config_registry[profile]
        except KeyError:
            raise KeyError(
                f"Application loads config profile '{profile}', which is not "
                f"configured in ladderconf fixture."
            ) from None

    def configure_func(profile, **kwargs):
        config_registry[profile] = kwargs

    config_load = mocker.patch("ladder.config.load")
    config_load.side_effect = mocked_loader
    yield configure_func


@pytest.fixture
def make_bot(tmp_path):
    """Writes a bot to a temporary directory and returns its BotConfig.

    `behavior` is one of "loop" (prints forever), "silent" (sleeps forever)
    and "crash" (exits at once). Python bots are run through the current
    interpreter, binary bots are shell scripts.
    """

    def factory(name, behavior='loop', kind=RuntimeKind.PYTHON, **kwargs):
        root = tmp_path / 'bots' / name
        root.mkdir(parents=True, exist_ok=True)
        if kind is RuntimeKind.PYTHON:
            file_name = name if name.endswith('.py') else name + '.py'
            (root / file_name).write_text(PYTHON_BOTS[behavior])
        else:
            file_name = name
            (root / file_name).write_text(SHELL_BOTS[behavior])
            os.chmod(root / file_name, 0o755)
        return BotConfig(name=name, type=kind, root_path=str(root),
                         file_name=file_name, **kwargs)

    return factory


@pytest.fixture
def runtimes():
    return RuntimeRegistry(hosts={RuntimeKind.PYTHON: sys.executable})


@pytest.fixture
def settings():
    return SessionSettings(client_timeout=1.0, max_game_loops=1000,
                           poll_interval=0.02, crash_grace=0.3)


@pytest.fixture
def engine():
    return FakeEngine()
