import types

import pytest

from ladder.errors import ConfigurationError
from ladder.runner.runtimes import (
    AgentRegistry,
    LaunchRecipe,
    RuntimeRegistry,
)
from ladder.types import BotConfig, RuntimeKind


def bot(kind, **kwargs):
    kwargs.setdefault('root_path', '/bots/foo')
    kwargs.setdefault('file_name', 'foo.bin')
    return BotConfig(name='foo', type=kind, **kwargs)


@pytest.mark.parametrize('kind,cmdline', [
    (RuntimeKind.BINARY_CPP, ['/bots/foo/foo.bin']),
    (RuntimeKind.COMMAND_CENTER, ['/bots/foo/foo.bin']),
    (RuntimeKind.PYTHON, ['python3', '/bots/foo/foo.bin']),
    (RuntimeKind.WINE, ['wine', '/bots/foo/foo.bin']),
    (RuntimeKind.MONO, ['mono', '/bots/foo/foo.bin']),
    (RuntimeKind.DOTNET_CORE, ['dotnet', '/bots/foo/foo.bin']),
    (RuntimeKind.NODEJS, ['node', '/bots/foo/foo.bin']),
    (RuntimeKind.JAVA, ['java', '-jar', '/bots/foo/foo.bin']),
])
def test_command(kind, cmdline):
    command = RuntimeRegistry().command(bot(kind))
    assert command.cmdline == cmdline
    assert command.cwd == '/bots/foo'


@pytest.mark.parametrize('kind', [RuntimeKind.COMPUTER, RuntimeKind.SKELETON])
def test_no_process(kind):
    assert RuntimeRegistry().command(bot(kind)) is None


def test_relative_paths(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    registry = RuntimeRegistry()

    command = registry.command(bot(RuntimeKind.BINARY_CPP,
                                   root_path='bots/foo'))
    assert command.program == str(tmp_path / 'bots' / 'foo' / 'foo.bin')
    assert command.cwd == str(tmp_path / 'bots' / 'foo')

    command = registry.command(bot(RuntimeKind.PYTHON, root_path=''))
    assert command.args == [str(tmp_path / 'foo.bin')]
    assert command.cwd == str(tmp_path)


def test_arguments():
    command = RuntimeRegistry().command(
        bot(RuntimeKind.PYTHON, args='--realtime "a b"'),
        ['--GamePort', '5677'])
    assert command.args == ['/bots/foo/foo.bin', '--realtime', 'a b',
                            '--GamePort', '5677']


def test_skeleton_flag_keeps_recipe():
    registry = RuntimeRegistry()
    assert (registry.command(bot(RuntimeKind.PYTHON, skeleton=True))
            == registry.command(bot(RuntimeKind.PYTHON)))


def test_host_override():
    registry = RuntimeRegistry(hosts={RuntimeKind.PYTHON: '/opt/py/bin/py'})
    assert registry.command(bot(RuntimeKind.PYTHON)).program == '/opt/py/bin/py'


def test_from_config():
    registry = RuntimeRegistry.from_config(
        {'runtimes': {'Java': '/usr/lib/jvm/bin/java'}})
    assert registry.command(bot(RuntimeKind.JAVA)).cmdline == [
        '/usr/lib/jvm/bin/java', '-jar', '/bots/foo/foo.bin']


def test_from_config_unknown_kind():
    with pytest.raises(ConfigurationError):
        RuntimeRegistry.from_config({'runtimes': {'cobol': 'cobc'}})


def test_unresolved_kind():
    registry = RuntimeRegistry()
    del registry.recipes[RuntimeKind.MONO]
    with pytest.raises(ConfigurationError):
        registry.command(bot(RuntimeKind.MONO))


def test_register_recipe():
    registry = RuntimeRegistry()
    registry.register(RuntimeKind.MONO, LaunchRecipe(host='mono',
                                                     host_args=('--debug',)))
    assert registry.command(bot(RuntimeKind.MONO)).cmdline == [
        'mono', '--debug', '/bots/foo/foo.bin']


class TestAgentRegistry:
    def test_register_module(self):
        module = types.ModuleType('agents.zerg')
        module.AGENT_NAME = 'ZergRush'
        module.create_agent = lambda bot: ('rush', bot.name)
        agents = AgentRegistry()

        registration = agents.register_module(module)

        assert registration.ok
        assert registration.name == 'ZergRush'
        assert 'ZergRush' in agents
        computer = BotConfig(name='ZergRush', type=RuntimeKind.COMPUTER)
        assert agents.create(computer) == ('rush', 'ZergRush')

    def test_missing_capability(self):
        module = types.ModuleType('agents.broken')
        module.AGENT_NAME = 'Broken'
        agents = AgentRegistry()

        registration = agents.register_module(module)

        assert not registration.ok
        assert registration.missing == ('create_agent',)
        assert 'Broken' not in agents

    def test_missing_everything(self):
        registration = AgentRegistry().register_module(
            types.ModuleType('agents.empty'))
        assert registration.missing == ('create_agent', 'AGENT_NAME')

    def test_unimportable_module(self):
        with pytest.raises(ConfigurationError):
            AgentRegistry().register_module('ladder.no_such_agents')

    def test_create_by_file_name(self):
        agents = AgentRegistry()
        agents.register('Hard', lambda bot: bot.difficulty)
        computer = BotConfig(name='CPU', type=RuntimeKind.COMPUTER,
                             file_name='Hard')
        assert agents.create(computer) == computer.difficulty

    def test_create_unknown(self):
        with pytest.raises(ConfigurationError):
            AgentRegistry().create(BotConfig(name='nobody',
                                             type=RuntimeKind.COMPUTER))

    def test_runtime_registry_agents(self):
        agents = AgentRegistry()
        agents.register('CPU', lambda bot: 'cpu agent')
        registry = RuntimeRegistry(agents=agents)
        assert registry.create_agent(
            BotConfig(name='CPU', type=RuntimeKind.COMPUTER)) == 'cpu agent'
        assert registry.create_agent(
            BotConfig(name='CPU', type=RuntimeKind.SKELETON)) is None
