import pytest

from couchlayer.config import Config


def test_defaults_without_a_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = Config(environ={})

    assert config.couchdb == {
        'url': 'http://localhost:5984',
        'request_timeout': 10000,
        'verify_tls': True,
    }
    assert config.get('logging', 'level') == 'INFO'
    assert config.get('missing', 'key', default='fallback') == 'fallback'


def test_yaml_values_merge_over_defaults(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text("couchdb:\n  url: https://couch.example.org\nlogging:\n  format: console\n")

    config = Config(str(path), environ={})

    assert config.couchdb['url'] == 'https://couch.example.org'
    assert config.couchdb['request_timeout'] == 10000
    assert config.logging == {'level': 'INFO', 'format': 'console'}


def test_environment_overrides_and_types(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text("couchdb:\n  url: http://from-file:5984\n")

    config = Config(str(path), environ={
        'COUCH_URL': 'http://from-env:5984',
        'COUCH_REQUEST_TIMEOUT': '2500',
        'COUCH_VERIFY_TLS': 'false',
        'LOG_LEVEL': 'DEBUG',
    })

    assert config.couchdb == {
        'url': 'http://from-env:5984',
        'request_timeout': 2500,
        'verify_tls': False,
    }
    assert config.get('logging', 'level') == 'DEBUG'


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config(str(tmp_path / 'nope.yaml'), environ={})


def test_invalid_yaml_is_an_error(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text("couchdb: [unclosed\n")

    with pytest.raises(ValueError):
        Config(str(path), environ={})
