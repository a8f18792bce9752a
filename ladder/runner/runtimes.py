# SPDX-License-Identifier: GPL-2.0-or-later
"""Turns a bot configuration into something that can be started.

Each runtime kind maps to exactly one LaunchRecipe. Most recipes produce a
command line; built-in kinds produce no process at all; their agent is
built in-process from a factory registered in an AgentRegistry.
"""

import dataclasses
import importlib
import logging
from typing import List, Optional, Tuple

from ladder.errors import ConfigurationError
from ladder.runner import tools
from ladder.types import RuntimeKind

DEFAULT_HOSTS = {
    RuntimeKind.PYTHON: 'python3',
    RuntimeKind.WINE: 'wine',
    RuntimeKind.MONO: 'mono',
    RuntimeKind.DOTNET_CORE: 'dotnet',
    RuntimeKind.JAVA: 'java',
    RuntimeKind.NODEJS: 'node',
}

# Capabilities a built-in agent module must expose.
AGENT_FACTORY = 'create_agent'
AGENT_NAME = 'AGENT_NAME'


@dataclasses.dataclass(frozen=True)
class Command:
    program: str
    args: List[str]
    cwd: str

    @property
    def cmdline(self):
        return [self.program] + list(self.args)


@dataclasses.dataclass(frozen=True)
class LaunchRecipe:
    """How to start bots of one runtime kind.

    Without a host, the entry file is executed directly; with one, the host
    is executed with `host_args` then the entry file. Recipes that do not
    spawn anything build no command.
    """

    host: Optional[str] = None
    host_args: Tuple[str, ...] = ()
    spawns: bool = True

    def command(self, bot, extra_args=()):
        if not self.spawns:
            return None
        if self.host is None:
            program, args = bot.entry_path, []
        else:
            program, args = self.host, [*self.host_args, bot.entry_path]
        args += tools.split_args(bot.args)
        args += list(extra_args)
        return Command(program, args, bot.working_dir)


NO_PROCESS = LaunchRecipe(spawns=False)


@dataclasses.dataclass(frozen=True)
class Registration:
    """Outcome of loading a built-in agent module. `missing` lists the
    capabilities the module failed to provide."""

    module: str
    name: Optional[str] = None
    missing: Tuple[str, ...] = ()

    @property
    def ok(self):
        return not self.missing


class AgentRegistry:
    """Factories of built-in agents, by bot name. One registry lives for one
    orchestration run and is passed explicitly to whoever needs it."""

    def __init__(self):
        self.factories = {}

    def register(self, name, factory):
        if name in self.factories:
            logging.warning('built-in agent %s registered twice', name)
        self.factories[name] = factory

    def register_module(self, module):
        """Registers the agent provided by `module` (a module or its name).

        Returns a Registration; nothing is registered unless both the
        factory and the display name are found.
        """
        if isinstance(module, str):
            try:
                module = importlib.import_module(module)
            except ImportError as e:
                raise ConfigurationError(
                    'cannot import agent module {}: {}'.format(module, e))
        factory = getattr(module, AGENT_FACTORY, None)
        name = getattr(module, AGENT_NAME, None)
        missing = tuple(capability for capability, value in (
            (AGENT_FACTORY, callable(factory)), (AGENT_NAME, bool(name)),
        ) if not value)
        if missing:
            return Registration(module.__name__, name, missing)
        self.register(name, factory)
        return Registration(module.__name__, name)

    def create(self, bot):
        key = bot.file_name or bot.name
        try:
            factory = self.factories[key]
        except KeyError:
            raise ConfigurationError(
                'no built-in agent registered as {!r}'.format(key)) from None
        return factory(bot)

    def __contains__(self, name):
        return name in self.factories


class RuntimeRegistry:
    def __init__(self, hosts=None, agents=None):
        self.agents = agents if agents is not None else AgentRegistry()
        self.recipes = {}

        hosts = {**DEFAULT_HOSTS, **(hosts or {})}
        direct = LaunchRecipe()
        self.register(RuntimeKind.BINARY_CPP, direct)
        self.register(RuntimeKind.COMMAND_CENTER, direct)
        for kind in (RuntimeKind.PYTHON, RuntimeKind.WINE, RuntimeKind.MONO,
                     RuntimeKind.DOTNET_CORE, RuntimeKind.NODEJS):
            self.register(kind, LaunchRecipe(host=hosts[kind]))
        self.register(RuntimeKind.JAVA,
                      LaunchRecipe(host=hosts[RuntimeKind.JAVA],
                                   host_args=('-jar',)))
        self.register(RuntimeKind.COMPUTER, NO_PROCESS)
        self.register(RuntimeKind.SKELETON, NO_PROCESS)

    @classmethod
    def from_config(cls, config, agents=None):
        hosts = {RuntimeKind.from_string(kind): host
                 for kind, host in (config.get('runtimes') or {}).items()}
        return cls(hosts, agents)

    def register(self, kind, recipe):
        self.recipes[kind] = recipe

    def resolve(self, kind):
        try:
            return self.recipes[kind]
        except KeyError:
            raise ConfigurationError(
                'no launch recipe for runtime kind {}'.format(kind)) from None

    def command(self, bot, extra_args=()):
        """Returns the Command starting `bot`, or None when it runs
        in-process."""
        return self.resolve(bot.type).command(bot, extra_args)

    def create_agent(self, bot):
        """Returns the in-process agent of a bot that spawns no process.

        Skeleton bots get no agent: the engine seats an idle placeholder.
        """
        if bot.type is RuntimeKind.SKELETON:
            return None
        return self.agents.create(bot)
