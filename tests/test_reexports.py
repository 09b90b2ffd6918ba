"""Re-export chains and alias scoping, end to end through real files."""


class TestReexportChains:
    """export * tracing with shadowing and cycles."""

    def test_multi_hop(self, project, analyze):
        root = project({
            'm1.ts': "export function helper() {}\nexport const config = {};\n",
            'm2.ts': "export * from './m1';\n",
            'm3.ts': "import { helper } from './m2';\nhelper();\n",
        })

        reports = analyze(root)

        assert reports['m1.ts'].unused_value_exports == {'config'}
        assert 'm2.ts' not in reports, "a pure barrel declares nothing of its own"
        assert 'm3.ts' not in reports

    def test_later_star_export_shadows_earlier(self, project, analyze):
        root = project({
            'm4.ts': "export const X = 1;\n",
            'm5.ts': "export const X = 2;\n",
            'm6.ts': "export * from './m4';\nexport * from './m5';\n",
            'm7.ts': "import { X } from './m6';\n",
        })

        reports = analyze(root)

        assert reports['m4.ts'].unused_value_exports == {'X'}
        assert 'm5.ts' not in reports

    def test_own_declaration_wins_over_star(self, project, analyze):
        root = project({
            'lib.ts': "export const X = 1;\n",
            'index.ts': "export * from './lib';\nexport const X = 2;\n",
            'main.ts': "import { X } from './index';\n",
        })

        reports = analyze(root)

        assert reports['lib.ts'].unused_value_exports == {'X'}
        assert 'index.ts' not in reports

    def test_default_is_not_forwarded_by_star(self, project, analyze):
        root = project({
            'lib.ts': "export default function run() {}\nexport const other = 1;\n",
            'index.ts': "export * from './lib';\n",
            'main.ts': "import run, { other } from './index';\n",
        })

        reports = analyze(root)

        assert reports['lib.ts'].unused_value_exports == {'default'}

    def test_named_reexport_chain(self, project, analyze):
        root = project({
            'lib.ts': "export const a = 1;\nexport const b = 2;\nexport const unused = 3;\n",
            'index.ts': "export { a, b as c } from './lib';\n",
            'main.ts': "import { c } from './index';\n",
        })

        reports = analyze(root)

        assert reports['lib.ts'].unused_value_exports == {'unused'}
        assert reports['index.ts'].unused_value_exports == {'a'}

    def test_cycle_terminates(self, project, analyze):
        root = project({
            'a.ts': "export * from './b';\nexport const fromA = 1;\n",
            'b.ts': "export * from './a';\nexport const fromB = 2;\n",
            'main.ts': "import { fromA, missing } from './b';\n",
        })

        reports = analyze(root)

        assert 'a.ts' not in reports
        assert reports['b.ts'].unused_value_exports == {'fromB'}

    def test_namespace_reexport_is_its_own_export(self, project, analyze):
        root = project({
            'lib.ts': "export const a = 1;\n",
            'index.ts': "export * as lib from './lib';\n",
            'main.ts': "import { lib } from './index';\n",
        })

        reports = analyze(root)

        assert 'index.ts' not in reports
        # members reached through the namespace object are not traced
        assert reports['lib.ts'].unused_value_exports == {'a'}


class TestBaseline:
    """Exports with and without consumers."""

    LIB = """
        export class Class {}
        export function Fn() {}
        export const Var = 1;
        export enum Enum { One }
        export interface Interface {}
        export type Type = string;
    """

    def test_no_consumers_reports_everything(self, project, analyze):
        root = project({'lib.ts': self.LIB})

        report = analyze(root)['lib.ts']

        assert report.unused_value_exports == {'Class', 'Fn', 'Var', 'Enum'}
        assert report.unused_type_exports == {'Interface', 'Type'}

    def test_partial_consumption(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': "import { Fn, Var, Enum, type Interface, type Type } from './lib';\n",
        })

        report = analyze(root)['lib.ts']

        assert report.unused_value_exports == {'Class'}
        assert report.unused_type_exports == set()


class TestAliasScoping:
    """Namespace aliases follow JavaScript scoping."""

    LIB = "export const A = 1;\nexport const B = 2;\n"

    def test_then_callback_alias_does_not_leak(self, project, analyze):
        root = project({
            'm8.ts': self.LIB,
            'main.ts': """
                import('./m8').then(mod => {
                    const { A } = mod;
                    use(A);
                });
                mod.B;
            """,
        })

        reports = analyze(root)

        assert reports['m8.ts'].unused_value_exports == {'B'}

    def test_then_callback_restores_outer_alias(self, project, analyze):
        root = project({
            'outer.ts': "export const X = 1;\nexport const Y = 2;\n",
            'inner.ts': "export const X = 1;\nexport const Z = 2;\n",
            'main.ts': """
                import * as mod from './outer';
                import('./inner').then(mod => mod.X);
                mod.Y;
            """,
        })

        reports = analyze(root)

        assert reports['outer.ts'].unused_value_exports == {'X'}
        assert reports['inner.ts'].unused_value_exports == {'Z'}

    def test_parameter_shadows_alias(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                import * as lib from './lib';
                function read(lib: any) {
                    return lib.B;
                }
                lib.A;
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'B'}

    def test_block_declaration_shadows_alias(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                import * as lib from './lib';
                if (ready) {
                    const lib = { B: 0 };
                    console.log(lib.B);
                }
                console.log(lib.A);
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'B'}

    def test_var_is_hoisted_to_function_scope(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                import * as lib from './lib';
                function read() {
                    if (ready) {
                        var lib = fallback;
                    }
                    return lib.B;
                }
                lib.A;
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'B'}

    def test_alias_bound_inside_function_is_local(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                function load() {
                    const lib = require('./lib');
                    return lib.A;
                }
                lib.B;
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'B'}

    def test_for_of_variable_shadows_alias(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                import * as lib from './lib';
                for (const lib of [{ A: 1 }]) {
                    console.log(lib.A);
                }
                lib.B;
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'A'}

    def test_for_in_variable_shadows_alias(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                import * as lib from './lib';
                for (let lib in registry) lib.A;
                lib.B;
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'A'}

    def test_for_loop_binding_ends_with_loop(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                import * as lib from './lib';
                for (let lib = 0; lib < 1; lib++) {}
                console.log(lib.A);
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'B'}

    def test_import_is_visible_before_its_statement(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                function run() {
                    return lib.A;
                }
                import * as lib from './lib';
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'B'}

    def test_import_require_is_visible_before_its_statement(self, project, analyze):
        root = project({
            'lib.ts': self.LIB,
            'main.ts': """
                export function run() {
                    return lib.B;
                }
                import lib = require('./lib');
            """,
        })

        assert analyze(root)['lib.ts'].unused_value_exports == {'A'}
