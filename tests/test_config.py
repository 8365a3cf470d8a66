"""
Unit tests for gitscan.config module
"""
import json
import logging
import os

import pytest

from gitscan.config import (
    apply_env_overrides,
    configure_logging,
    get_config_path,
    get_default_config,
    load_config,
    logger,
    merge_configs,
)
from gitscan.exit_codes import ConfigError


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("GITSCAN_"):
            monkeypatch.delenv(key)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    original_level = logger.level
    yield home
    logger.setLevel(original_level)


class TestDefaults:

    def test_default_sections(self):
        config = get_default_config()
        assert config['scan']['exclude_dirs'] == []
        assert config['scan']['include_nested'] is False
        assert config['scan']['follow_symlinks'] is True
        assert config['foreach']['status'] == 'all'
        assert config['foreach']['parallel'] == 1
        assert config['foreach']['path_var'] == 'path'
        assert config['foreach']['toplevel_var'] == 'toplevel'
        assert config['logging']['level'] == 'INFO'

    def test_load_without_file(self, isolated_home):
        assert load_config() == get_default_config()
        assert get_config_path() == isolated_home / '.gitscan' / 'config.json'


class TestConfigFiles:

    def test_yaml_file(self, isolated_home):
        config_dir = isolated_home / '.gitscan'
        config_dir.mkdir()
        (config_dir / 'config.yaml').write_text(
            "scan:\n  exclude_dirs: [node_modules]\nforeach:\n  parallel: 4\n"
        )

        config = load_config()

        assert config['scan']['exclude_dirs'] == ['node_modules']
        assert config['scan']['follow_symlinks'] is True
        assert config['foreach']['parallel'] == 4
        assert config['foreach']['status'] == 'all'

    def test_toml_file(self, isolated_home):
        config_dir = isolated_home / '.gitscan'
        config_dir.mkdir()
        (config_dir / 'config.toml').write_text('[foreach]\nstatus = "novel"\ntimeout = 30\n')

        config = load_config()

        assert config['foreach']['status'] == 'novel'
        assert config['foreach']['timeout'] == 30

    def test_env_points_at_file(self, tmp_path, monkeypatch):
        custom = tmp_path / 'custom.json'
        custom.write_text(json.dumps({'scan': {'include_nested': True}}))
        monkeypatch.setenv('GITSCAN_CONFIG', str(custom))

        assert get_config_path() == custom
        assert load_config()['scan']['include_nested'] is True

    def test_malformed_file(self, isolated_home):
        config_dir = isolated_home / '.gitscan'
        config_dir.mkdir()
        (config_dir / 'config.json').write_text('{"scan": ')

        with pytest.raises(ConfigError):
            load_config()

    def test_non_mapping_file(self, isolated_home):
        config_dir = isolated_home / '.gitscan'
        config_dir.mkdir()
        (config_dir / 'config.yaml').write_text('- just\n- a list\n')

        with pytest.raises(ConfigError):
            load_config()


class TestMergeAndEnv:

    def test_merge_is_recursive(self):
        merged = merge_configs({'a': {'x': 1, 'y': 2}, 'b': 1}, {'a': {'y': 3}, 'c': 4})
        assert merged == {'a': {'x': 1, 'y': 3}, 'b': 1, 'c': 4}

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv('GITSCAN_FOREACH_PARALLEL', '4')
        monkeypatch.setenv('GITSCAN_SCAN_INCLUDE_NESTED', 'true')
        monkeypatch.setenv('GITSCAN_FOREACH_PATH_VAR', 'REPO')
        monkeypatch.setenv('GITSCAN_SCAN_EXCLUDE_DIRS', 'node_modules,vendor')

        config = apply_env_overrides(get_default_config())

        assert config['foreach']['parallel'] == 4
        assert config['scan']['include_nested'] is True
        assert config['foreach']['path_var'] == 'REPO'
        assert config['scan']['exclude_dirs'] == ['node_modules', 'vendor']

    def test_unknown_env_keys_are_ignored(self, monkeypatch):
        monkeypatch.setenv('GITSCAN_NOPE_VALUE', 'x')
        assert apply_env_overrides(get_default_config()) == get_default_config()


class TestLogging:

    def test_level_from_config(self):
        configure_logging({'logging': {'level': 'warning'}})
        assert logger.level == logging.WARNING

    def test_verbose_forces_debug(self):
        configure_logging({'logging': {'level': 'ERROR'}}, verbose=True)
        assert logger.level == logging.DEBUG

    def test_unknown_level(self):
        with pytest.raises(ConfigError):
            configure_logging({'logging': {'level': 'LOUD'}})
