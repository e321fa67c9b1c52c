"""Tests for the propdeps command line."""

import json

import pytest
from typer.testing import CliRunner

from propdeps.config import __version__, reset_config
from propdeps.main import app, collect_files

runner = CliRunner()

CLEAN = """
function Hello(props) {
  return <div>{props.name}</div>;
}
memo(Hello, shouldSkipUpdate(['name']));
"""

MISSING = """
function Hello(props) {
  return <div>{props.name}{props.title}</div>;
}
memo(Hello, shouldSkipUpdate(['name']));
"""


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ('PROPDEPS_IGNORE', 'PROPDEPS_CHECK_UNUSED', 'PROPDEPS_STRICT_MATCH', 'PROPDEPS_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def write(tmp_path):
    def _write(name: str, source: str):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source)
        return path
    return _write


class TestCheck:
    """propdeps check"""

    def test_clean_file_exits_zero(self, write):
        """A file without findings exits with 0."""
        path = write('Hello.jsx', CLEAN)
        result = runner.invoke(app, ['check', str(path)])
        assert result.exit_code == 0
        assert 'No findings' in result.stdout

    def test_findings_exit_one(self, write):
        """Findings make the command exit with 1."""
        path = write('Hello.jsx', MISSING)
        result = runner.invoke(app, ['check', str(path)])
        assert result.exit_code == 1
        assert '2 finding(s)' in result.stdout

    def test_json_output(self, write):
        """--json prints one report per file."""
        path = write('Hello.jsx', MISSING)
        result = runner.invoke(app, ['check', '--json', str(path)])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        component = data[0]['components'][0]
        assert component['name'] == 'Hello'
        assert component['used'] == ['name', 'title']
        assert [f['kind'] for f in component['findings']] == [
            'missingFromDependencyList', 'missingFromDependencyListLegacy',
        ]
        assert component['findings'][0]['line'] == 3

    def test_ignore_option(self, write):
        """--ignore drops findings for that key."""
        path = write('Hello.jsx', MISSING)
        result = runner.invoke(app, ['check', '--ignore', 'title', str(path)])
        assert result.exit_code == 0

    def test_ignore_from_environment(self, write, monkeypatch):
        """PROPDEPS_IGNORE works like --ignore."""
        monkeypatch.setenv('PROPDEPS_IGNORE', 'title')
        path = write('Hello.jsx', MISSING)
        result = runner.invoke(app, ['check', str(path)])
        assert result.exit_code == 0

    def test_check_unused(self, write):
        """Unused entries are only reported with --check-unused."""
        path = write('Hello.jsx', CLEAN.replace("['name']", "['name', 'extra']"))
        assert runner.invoke(app, ['check', str(path)]).exit_code == 0
        result = runner.invoke(app, ['check', '--check-unused', '--json', str(path)])
        assert result.exit_code == 1
        findings = json.loads(result.stdout)[0]['components'][0]['findings']
        assert [(f['kind'], f['path']) for f in findings] == [('unusedDependency', 'extra')]

    def test_forced_language(self, write):
        """--language overrides the file extension."""
        path = write('component.txt', CLEAN)
        result = runner.invoke(app, ['check', '--language', 'javascript', str(path)])
        assert result.exit_code == 0

    def test_invalid_language(self, write):
        """An unknown language is a usage error."""
        path = write('Hello.jsx', CLEAN)
        result = runner.invoke(app, ['check', '--language', 'cobol', str(path)])
        assert result.exit_code == 2

    def test_missing_path(self, tmp_path):
        """A path that does not exist exits with 1."""
        result = runner.invoke(app, ['check', str(tmp_path / 'nope.jsx')])
        assert result.exit_code == 1
        assert 'does not exist' in result.stdout

    def test_invalid_log_level(self, write, monkeypatch):
        """A bad PROPDEPS_LOG_LEVEL is reported as a configuration error."""
        monkeypatch.setenv('PROPDEPS_LOG_LEVEL', 'loud')
        path = write('Hello.jsx', CLEAN)
        result = runner.invoke(app, ['check', str(path)])
        assert result.exit_code == 2
        assert 'Configuration error' in result.stdout


class TestCollectFiles:

    def test_directories_skip_excluded_dirs(self, write, tmp_path):
        """node_modules and non-source files are skipped."""
        kept = write('src/Hello.tsx', CLEAN)
        write('node_modules/lib/Other.js', CLEAN)
        write('src/notes.md', '# notes')
        assert collect_files([tmp_path]) == [kept]

    def test_directory_scan_through_cli(self, write, tmp_path):
        """Directories are scanned recursively without build output."""
        write('src/Hello.jsx', MISSING)
        write('build/Hello.jsx', MISSING)
        result = runner.invoke(app, ['check', '--json', str(tmp_path)])
        data = json.loads(result.stdout)
        assert len(data) == 1
        assert data[0]['path'].endswith('Hello.jsx')
        assert '/build/' not in data[0]['path']


class TestPathsCommand:

    def test_lists_components(self, write):
        """paths prints the components of a file."""
        path = write('Hello.jsx', MISSING)
        result = runner.invoke(app, ['paths', str(path)])
        assert result.exit_code == 0
        assert 'Hello' in result.stdout

    def test_no_components(self, write):
        """paths says so when a file has no components."""
        path = write('util.js', 'export const answer = 42;\n')
        result = runner.invoke(app, ['paths', str(path)])
        assert result.exit_code == 0
        assert 'No components' in result.stdout


def test_version():
    """--version prints the package version."""
    result = runner.invoke(app, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.stdout
