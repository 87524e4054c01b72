import pytest

from loader.config import Config


def test_default_config_targets_product_source():
    config = Config(environ={})

    assert config.source['url'] == 'https://dummyjson.com/products'
    assert config.source['items_key'] == 'products'
    assert config.fetcher['max_response_size'] == 10485760
    assert config.fallback['enabled'] is False


def test_env_overrides_are_typed_by_target(config_file):
    path = config_file("fetcher:\n  timeout: 30.0\n")
    environ = {
        'FETCHER_TIMEOUT': '2',
        'FETCHER_MAX_REDIRECTS': '3',
        'FALLBACK_ENABLED': 'TRUE',
        'REFRESH_INTERVAL': '15',
        'LOADER_SOURCE_URL': 'http://localhost:8000/items',
    }

    config = Config(path, environ=environ)

    assert config.fetcher['timeout'] == 2.0
    assert isinstance(config.fetcher['timeout'], float)
    assert config.fetcher['max_redirects'] == 3
    assert config.fallback['enabled'] is True
    assert config.consumer['refresh_interval'] == 15.0
    assert config.source['url'] == 'http://localhost:8000/items'


def test_string_overrides_stay_strings(config_file):
    environ = {
        'FETCHER_USER_AGENT': '1.0',
        'LOADER_ITEMS_KEY': '1',
        'LOADER_TOTAL_KEY': 'true',
    }

    config = Config(config_file(""), environ=environ)

    assert config.fetcher['user_agent'] == '1.0'
    assert config.source['items_key'] == '1'
    assert config.source['total_key'] == 'true'


@pytest.mark.parametrize("env_var, value", [
    ('FETCHER_TIMEOUT', 'soon'),
    ('FETCHER_MAX_REDIRECTS', '2.5'),
    ('FALLBACK_ENABLED', 'maybe'),
])
def test_malformed_override_names_the_variable(config_file, env_var, value):
    with pytest.raises(ValueError, match=env_var):
        Config(config_file(""), environ={env_var: value})


def test_sections_are_copies(config_file):
    config = Config(config_file("logging:\n  level: DEBUG\n"), environ={})

    config.logging['level'] = 'ERROR'

    assert config.logging == {'level': 'DEBUG'}
    assert config.section('missing') == {}


def test_empty_file_gives_empty_sections(config_file):
    config = Config(config_file("consumer:\n"), environ={})

    assert config.consumer == {}
    assert config.source == {}


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config(tmp_path / "nope.yaml", environ={})


def test_invalid_yaml_raises_value_error(config_file):
    with pytest.raises(ValueError):
        Config(config_file("source: [unclosed\n"), environ={})


@pytest.mark.parametrize("text", ["- just\n- a list\n", "source: https://example.com\n"])
def test_non_mapping_raises_value_error(config_file, text):
    with pytest.raises(ValueError):
        Config(config_file(text), environ={})
