"""Finalizer rules on hand-built registries (no parsing involved)."""
from pathlib import Path

import pytest

from ts_deadcode.analyzer.errors import DuplicateModuleError
from ts_deadcode.analyzer.finalizer import ModuleReport, finalize, trace_export
from ts_deadcode.analyzer.usage_index import AnalysisContext, FileFacts, ModuleExports

M1, M2, M3, M4 = (Path(f'/project/m{i}.ts') for i in range(1, 5))


def exports(values=(), types=(), export_all=()):
    return ModuleExports(
        value_exports={name: name for name in values},
        type_exports={name: name for name in types},
        export_all=list(export_all),
    )


@pytest.fixture
def context():
    return AnalysisContext()


class TestTraceExport:

    def test_own_declaration(self, context):
        context.exports.register(M1, exports(values=['a']))

        assert trace_export(context.exports, M1, 'a') == M1

    def test_star_edges_checked_last_first(self, context):
        context.exports.register(M1, exports(values=['x']))
        context.exports.register(M2, exports(values=['x']))
        context.exports.register(M3, exports(export_all=[M1, M2]))

        assert trace_export(context.exports, M3, 'x') == M2

    def test_falls_back_to_earlier_edge(self, context):
        context.exports.register(M1, exports(values=['x']))
        context.exports.register(M2, exports(values=['y']))
        context.exports.register(M3, exports(export_all=[M1, M2]))

        assert trace_export(context.exports, M3, 'x') == M1

    def test_default_not_forwarded(self, context):
        context.exports.register(M1, exports(values=['default']))
        context.exports.register(M2, exports(export_all=[M1]))

        assert trace_export(context.exports, M2, 'default') is None

    def test_unknown_module_and_cycle(self, context):
        context.exports.register(M1, exports(export_all=[M2]))
        context.exports.register(M2, exports(export_all=[M1, M4]))

        assert trace_export(context.exports, M1, 'nothing') is None
        assert trace_export(context.exports, M4, 'nothing') is None


class TestFinalize:

    def test_direct_usage(self, context):
        context.commit(FileFacts(M1, exports(values=['a', 'b'], types=['T'])))
        context.commit(FileFacts(M2, exports(), usages=[(M1, 'a'), (M1, 'T')]))

        reports = finalize(context)

        assert reports == {M1: ModuleReport(unused_value_exports={'b'}, unused_type_exports=set())}

    def test_name_in_both_tables_is_cleared_from_both(self, context):
        # `export const Shape` and `export type Shape` may coexist
        context.commit(FileFacts(M1, exports(values=['Shape'], types=['Shape', 'Other'])))
        context.commit(FileFacts(M2, exports(), usages=[(M1, 'Shape')]))

        report = finalize(context)[M1]

        assert report.unused_value_exports == set()
        assert report.unused_type_exports == {'Other'}

    def test_usage_through_barrel(self, context):
        context.commit(FileFacts(M1, exports(values=['helper', 'config'])))
        context.commit(FileFacts(M2, exports(export_all=[M1])))
        context.commit(FileFacts(M3, exports(), usages=[(M2, 'helper')]))

        reports = finalize(context)

        assert set(reports) == {M1}
        assert reports[M1].unused_value_exports == {'config'}

    def test_usage_of_unanalyzed_module_is_ignored(self, context):
        context.commit(FileFacts(M1, exports(values=['a']), usages=[(M4, 'a')]))

        assert finalize(context)[M1].unused_value_exports == {'a'}

    def test_idempotent(self, context):
        context.commit(FileFacts(M1, exports(values=['a', 'b'], export_all=[M2])))
        context.commit(FileFacts(M2, exports(values=['c'], export_all=[M1])))
        context.commit(FileFacts(M3, exports(), usages=[(M1, 'c')]))

        first = finalize(context)
        second = finalize(context)

        assert first == second
        assert first[M1].unused_value_exports == {'a', 'b'}
        assert M2 not in first

    def test_finalize_does_not_mutate_context(self, context):
        context.commit(FileFacts(M1, exports(values=['a'])))
        context.commit(FileFacts(M2, exports(), usages=[(M1, 'a')]))

        finalize(context)

        assert context.exports.get(M1).value_exports == {'a': 'a'}
        assert (M1, 'a') in context.usages
        assert len(context.usages) == 1


class TestRegistry:

    def test_duplicate_registration_rejected(self, context):
        context.commit(FileFacts(M1, exports(values=['a'])))

        with pytest.raises(DuplicateModuleError):
            context.commit(FileFacts(M1, exports(values=['b'])))

        assert context.exports.get(M1).value_exports == {'a': 'a'}

    def test_usage_index_merge(self, context):
        other = AnalysisContext()
        other.usages.add_usage(M1, 'a')
        other.usages.add_usage(M1, 'b')
        context.usages.add_usage(M1, 'a')

        context.usages.merge(other.usages)

        assert context.usages.symbols_for(M1) == {'a', 'b'}
        assert sorted(context.usages.facts()) == [(M1, 'a'), (M1, 'b')]
        assert context.usages.symbols_for(M2) == set()
