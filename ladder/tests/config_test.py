import pytest

import ladder.config


@pytest.fixture(autouse=True)
def clear_cache():
    ladder.config.LOADED_CONFIGS.clear()
    yield
    ladder.config.LOADED_CONFIGS.clear()


def test_load_profile(tmp_path, monkeypatch):
    (tmp_path / 'ladder.yml').write_text(
        'session:\n  client_timeout_secs: 30\nscheduler:\n  concurrency: 2\n')
    monkeypatch.setenv('CFG_DIR', str(tmp_path))

    config = ladder.config.load('ladder')

    assert config['session']['client_timeout_secs'] == 30
    assert ladder.config.section(config, 'scheduler') == {'concurrency': 2}
    assert ladder.config.section(config, 'results') == {}


def test_load_is_cached(tmp_path, monkeypatch):
    path = tmp_path / 'ladder.yml'
    path.write_text('a: 1\n')
    monkeypatch.setenv('CFG_DIR', str(tmp_path))

    first = ladder.config.load('ladder')
    path.write_text('a: 2\n')

    assert ladder.config.load('ladder') is first
    assert first['a'] == 1


def test_empty_file(tmp_path):
    path = tmp_path / 'empty.yml'
    path.write_text('')
    assert ladder.config.load_file(str(path)) == {}


def test_missing_profile(tmp_path, monkeypatch):
    monkeypatch.setenv('CFG_DIR', str(tmp_path))
    with pytest.raises(ladder.config.ConfigReadError):
        ladder.config.load('nope')


def test_invalid_yaml(tmp_path):
    path = tmp_path / 'broken.yml'
    path.write_text('a: [1, 2\n')
    with pytest.raises(ladder.config.ConfigReadError):
        ladder.config.load_file(str(path))
