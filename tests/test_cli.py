"""CLI tests through typer's CliRunner.

Uses the barrel_app fixture project:
- tsconfig path alias (@lib/*) and a package.json "main" entry
- a barrel (src/lib/index.ts) that nobody imports
- a CommonJS consumer (src/legacy.js)
"""
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ts_deadcode.config import __version__
from ts_deadcode.main import app

FIXTURES_DIR = Path(__file__).parent / 'fixtures'
BARREL_APP = FIXTURES_DIR / 'barrel_app'

runner = CliRunner()


def audit_json(*args):
    result = runner.invoke(app, ['audit', *args, '--json'])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestAudit:

    def test_json_report(self):
        report = audit_json(str(BARREL_APP))

        assert report['resolver'] == 'tsconfig'
        assert report['files_analyzed'] == 6
        assert report['files_skipped'] == []
        assert report['reexport_cycles'] == []
        assert [(row['file'], row['export'], row['kind']) for row in report['dead_exports']] == [
            ('src/lib/dates.ts', 'EPOCH', 'value'),
            ('src/lib/dates.ts', 'isEpoch', 'value'),
            ('src/lib/dates.ts', 'parseDate', 'value'),
            ('src/lib/strings.ts', 'slugify', 'value'),
            ('src/types.ts', 'Mode', 'type'),
        ]

    def test_same_file_note(self):
        rows = {row['export']: row for row in audit_json(str(BARREL_APP))['dead_exports']}

        assert rows['EPOCH']['used_locally'] is True
        assert rows['parseDate']['used_locally'] is False

        rows = audit_json(str(BARREL_APP), '--no-same-file-check')['dead_exports']
        assert not any(row['used_locally'] for row in rows)

    def test_entry_glob_hides_module(self):
        report = audit_json(str(BARREL_APP), '--entry', 'src/lib/*.ts')

        assert {row['file'] for row in report['dead_exports']} == {'src/types.ts'}

    def test_relative_resolver_cannot_see_aliases(self):
        result = runner.invoke(app, ['audit', str(BARREL_APP), '--resolver', 'relative', '--json'])

        assert result.exit_code == 0, result.output
        assert '"formatDate"' in result.output, "unresolved alias import leaves formatDate unused"

    def test_table_output_and_fail_flag(self):
        result = runner.invoke(app, ['audit', str(BARREL_APP), '--fail'])

        assert result.exit_code == 1
        assert 'Dead Exports' in result.output
        assert 'slugify' in result.output
        assert 'Dead exports: 5' in result.output

    def test_clean_project(self, project):
        root = project({
            'lib.ts': "export const a = 1;\n",
            'main.ts': "import { a } from './lib';\nconsole.log(a);\n",
            'package.json': '{"name": "clean", "main": "main.ts"}',
        })

        result = runner.invoke(app, ['audit', str(root), '--fail'])

        assert result.exit_code == 0, result.output
        assert 'No dead exports found' in result.output

    def test_missing_path(self, tmp_path):
        result = runner.invoke(app, ['audit', str(tmp_path / 'nope')])

        assert result.exit_code == 1
        assert 'does not exist' in result.output

    def test_parse_error_aborts_unless_keep_going(self, project):
        root = project({
            'lib.ts': "export const a = 1;\n",
            'broken.ts': "export const = ;\n",
        })

        aborted = runner.invoke(app, ['audit', str(root)])
        assert aborted.exit_code == 1
        assert '--keep-going' in aborted.output

        kept = runner.invoke(app, ['audit', str(root), '--keep-going'])
        assert kept.exit_code == 0, kept.output
        assert 'Files skipped' in kept.output

    def test_parallel_jobs_match_serial(self):
        serial = audit_json(str(BARREL_APP))
        parallel = audit_json(str(BARREL_APP), '--jobs', '2')

        assert parallel['dead_exports'] == serial['dead_exports']

    def test_environment_configuration(self, project, monkeypatch):
        root = project({
            'lib.ts': "export const a = 1;\n",
            'lib.test.ts': "import { a } from './lib';\n",
        })

        assert audit_json(str(root))['dead_exports'] == []

        monkeypatch.setenv('TS_DEADCODE_EXCLUDE_TESTS', 'true')
        report = audit_json(str(root))
        assert [row['export'] for row in report['dead_exports']] == ['a']

    def test_invalid_environment_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv('TS_DEADCODE_JOBS', 'many')

        result = runner.invoke(app, ['audit', str(tmp_path)])

        assert result.exit_code == 1
        assert 'TS_DEADCODE_JOBS' in result.output


class TestGraph:

    def test_barrel_statistics(self):
        result = runner.invoke(app, ['graph', str(BARREL_APP)])

        assert result.exit_code == 0, result.output
        assert 'Re-export Graph' in result.output
        assert 'src/lib/index.ts' in result.output
        assert 'No re-export cycles' in result.output

    def test_cycles_listed(self, project):
        root = project({
            'a.ts': "export * from './b';\n",
            'b.ts': "export * from './a';\n",
        })

        result = runner.invoke(app, ['graph', str(root)])

        assert result.exit_code == 0, result.output
        assert 'Re-export cycles' in result.output


def test_version():
    result = runner.invoke(app, ['--version'])

    assert result.exit_code == 0
    assert __version__ in result.output
