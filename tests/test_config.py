"""Tests for environment configuration and analysis options."""

import logging
import os

import pytest

from propdeps.config import (
    DEFAULT_REGISTRATION_CALLEE, AnalysisOptions, Config, get_config, merge_names, reset_config,
)

ENV_VARS = (
    'PROPDEPS_IGNORE', 'PROPDEPS_SKIP_UNDECLARED', 'PROPDEPS_CUSTOM_VALIDATORS',
    'PROPDEPS_CHECK_UNUSED', 'PROPDEPS_STRICT_MATCH', 'PROPDEPS_REGISTRATION_CALLEE',
    'PROPDEPS_LOG_LEVEL',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run each test in an empty directory with no PROPDEPS_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestDefaults:

    def test_default_options(self):
        """Without environment the options are the defaults."""
        options = Config().analysis_options()
        assert options == AnalysisOptions()
        assert options.match_descendants
        assert options.registration_callee == DEFAULT_REGISTRATION_CALLEE

    def test_default_log_level(self):
        """The default log level is WARNING."""
        config = Config()
        assert config.log_level == 'WARNING'
        assert config.log_level_value == logging.WARNING


class TestEnvironment:
    """PROPDEPS_* variables."""

    def test_lists_are_comma_separated(self, monkeypatch):
        """List variables split on commas and drop blanks."""
        monkeypatch.setenv('PROPDEPS_IGNORE', 'className, style,,')
        monkeypatch.setenv('PROPDEPS_CUSTOM_VALIDATORS', 'customProp')
        config = Config()
        assert config.ignore == frozenset({'className', 'style'})
        assert config.custom_validators == frozenset({'customProp'})

    @pytest.mark.parametrize('raw,expected', [('1', True), ('yes', True), ('ON', True), ('0', False), ('', False)])
    def test_flags(self, monkeypatch, raw, expected):
        """Flag variables accept the usual truthy spellings."""
        monkeypatch.setenv('PROPDEPS_CHECK_UNUSED', raw)
        assert Config().check_unused is expected

    def test_strict_match_disables_descendant_matching(self, monkeypatch):
        """Strict matching requires exact entries."""
        monkeypatch.setenv('PROPDEPS_STRICT_MATCH', 'true')
        assert not Config().analysis_options().match_descendants

    def test_registration_callee(self, monkeypatch):
        """The registration callee can be renamed."""
        monkeypatch.setenv('PROPDEPS_REGISTRATION_CALLEE', 'propsAreEqual')
        assert Config().analysis_options().registration_callee == 'propsAreEqual'

    def test_invalid_log_level_raises(self, monkeypatch):
        """An unknown log level is rejected."""
        monkeypatch.setenv('PROPDEPS_LOG_LEVEL', 'loud')
        with pytest.raises(ValueError, match='PROPDEPS_LOG_LEVEL'):
            Config()

    def test_log_level_is_case_insensitive(self, monkeypatch):
        """Log levels are case-insensitive."""
        monkeypatch.setenv('PROPDEPS_LOG_LEVEL', 'debug')
        assert Config().log_level_value == logging.DEBUG

    def test_dotenv_file_is_loaded(self, tmp_path):
        """Values are read from a .env file."""
        env_file = tmp_path / '.env'
        env_file.write_text('PROPDEPS_SKIP_UNDECLARED=1\n')
        try:
            assert Config(env_file).skip_undeclared
        finally:
            os.environ.pop('PROPDEPS_SKIP_UNDECLARED', None)


class TestOverrides:

    def test_none_keeps_environment_value(self, monkeypatch):
        """None overrides keep the environment value."""
        monkeypatch.setenv('PROPDEPS_SKIP_UNDECLARED', '1')
        options = Config().analysis_options(skip_undeclared=None, check_unused_dependencies=True)
        assert options.skip_undeclared
        assert options.check_unused_dependencies

    def test_name_lists_become_frozensets(self):
        """Name lists are stored as frozensets."""
        options = AnalysisOptions().with_overrides(ignore=['a', 'b'])
        assert options.ignore == frozenset({'a', 'b'})

    def test_merge_names(self):
        """merge_names adds extra names to a base set."""
        assert merge_names(frozenset({'a'}), ['b']) == frozenset({'a', 'b'})
        assert merge_names(frozenset({'a'}), None) == frozenset({'a'})


class TestSingleton:

    def test_get_config_is_cached_until_reset(self):
        """get_config() is cached until reset_config()."""
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
