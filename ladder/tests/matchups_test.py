import pytest
import pytest_asyncio
from aiohttp import web

from ladder.errors import ConfigurationError, MatchupSourceError
from ladder.scheduler.matchups import (
    MatchupSource,
    load_bots,
    parse_matchup_lines,
    read_matchup_file,
)
from ladder.types import BotConfig, MatchupListType, RuntimeKind

MATCHUP_FILE = '''\
# Round one
"botA"vs"botB" TestMapLE.SC2Map
"botB" vs "botA" OtherMapLE

"botA"vs"ghost" TestMapLE
"botA"vs"retired" TestMapLE
botA vs botB TestMapLE
'''

REMOTE_MATCHUPS = [
    {'Bot1': {'name': 'botA', 'id': 12, 'checksum': 'aaaa'},
     'Bot2': {'name': 'botB', 'id': '13', 'checksum': None},
     'Map': 'TestMapLE'},
    {'Bot1': {'name': 'botA'}, 'Bot2': {'name': 'ghost'}, 'Map': 'TestMapLE'},
    {'Bot1': {'name': 'botA'}, 'Map': 'TestMapLE'},
]


@pytest.fixture
def bots():
    return {
        'botA': BotConfig(name='botA', player_id='1'),
        'botB': BotConfig(name='botB', type=RuntimeKind.PYTHON),
        'retired': BotConfig(name='retired', enabled=False),
    }


@pytest.fixture
def matchup_file(tmp_path):
    path = tmp_path / 'matchups.txt'
    path.write_text(MATCHUP_FILE)
    return str(path)


def test_parse_lines(bots):
    matchups = parse_matchup_lines(MATCHUP_FILE.splitlines(), bots)

    assert [(m.bot1.name, m.bot2.name, m.map) for m in matchups] == [
        ('botA', 'botB', 'TestMapLE.SC2Map'),
        ('botB', 'botA', 'OtherMapLE'),
    ]
    assert matchups[0].bot1_id == '1'
    assert matchups[0].bot2_id == ''


def test_read_missing_file(bots, tmp_path):
    with pytest.raises(MatchupSourceError):
        read_matchup_file(str(tmp_path / 'nope.txt'), bots)


def test_load_bots():
    bots = load_bots({'bots': {
        'botA': {'type': 'python', 'path': '/bots/a', 'file': 'a.py'},
        'botB': None,
    }})
    assert bots['botA'].type is RuntimeKind.PYTHON
    assert bots['botB'].type is RuntimeKind.BINARY_CPP


def test_load_bots_from_file(tmp_path):
    path = tmp_path / 'bots.yml'
    path.write_text('botA:\n  type: java\n  file: a.jar\n')
    bots = load_bots({'bots_file': str(path)})
    assert bots['botA'].type is RuntimeKind.JAVA


def test_no_bots():
    with pytest.raises(ConfigurationError):
        load_bots({})


def test_source_from_config(bots):
    source = MatchupSource.from_config(
        {'matchups': {'type': 'URL', 'url': 'http://ladder/next',
                      'retries': 1}}, bots)
    assert source.list_type is MatchupListType.URL
    assert source.max_retries == 1

    with pytest.raises(ConfigurationError):
        MatchupSource.from_config({'matchups': {'type': 'carrier-pigeon'}},
                                  bots)


@pytest.mark.asyncio
async def test_fetch_file(bots, matchup_file):
    source = MatchupSource(MatchupListType.FILE, bots, path=matchup_file)
    assert len(await source.fetch()) == 2


@pytest_asyncio.fixture
async def ladder_server(aiohttp_server):
    calls = []

    async def next_matchups(request):
        calls.append(request.path)
        return web.json_response(REMOTE_MATCHUPS)

    async def broken(request):
        calls.append(request.path)
        raise web.HTTPInternalServerError()

    app = web.Application()
    app.router.add_get('/next', next_matchups)
    app.router.add_get('/broken', broken)
    server = await aiohttp_server(app)
    server.calls = calls
    return server


@pytest.mark.asyncio
async def test_fetch_remote(bots, ladder_server):
    source = MatchupSource(MatchupListType.URL, bots,
                           url=str(ladder_server.make_url('/next')))

    matchups = await source.fetch()

    assert len(matchups) == 1
    matchup = matchups[0]
    assert matchup.bot1.name == 'botA'
    assert matchup.bot1_id == '12'
    assert matchup.bot1_checksum == 'aaaa'
    assert matchup.bot2_id == '13'
    assert matchup.bot2_checksum == ''


@pytest.mark.asyncio
async def test_fetch_remote_retries(bots, ladder_server):
    source = MatchupSource(MatchupListType.URL, bots,
                           url=str(ladder_server.make_url('/broken')),
                           max_retries=2, retry_delay=0)

    with pytest.raises(MatchupSourceError):
        await source.fetch()
    assert len(ladder_server.calls) == 3


@pytest.mark.asyncio
async def test_fetch_remote_falls_back_on_file(bots, ladder_server,
                                               matchup_file):
    source = MatchupSource(MatchupListType.URL, bots,
                           url=str(ladder_server.make_url('/broken')),
                           path=matchup_file, max_retries=0)

    matchups = await source.fetch()

    assert len(matchups) == 2
    assert ladder_server.calls == ['/broken']
