"""Export and usage extraction from TypeScript/JavaScript syntax trees.

One pass over a module's tree-sitter tree produces:
- the module's export table (value and type-only exports)
- its `export * from` edges, in declaration order
- usage facts (target module, exported name) for every import form

Facts are buffered in a FileFacts and only committed to the shared
AnalysisContext once the whole file was understood.
"""
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple
from tree_sitter import Node, Tree

from .alias_scope import AliasScope
from .errors import MalformedSyntaxError
from .resolver import ReferenceKind, ResolutionFailure, ResolvedModule, Resolver
from .usage_index import AnalysisContext, Diagnostic, FileFacts, ModuleExports

logger = logging.getLogger(__name__)

DEFAULT_EXPORT = 'default'

# Nodes that open a function scope (parameters shadow outer aliases)
FUNCTION_NODES = frozenset({
    'function_declaration', 'generator_function_declaration',
    'function_expression', 'function', 'generator_function',
    'arrow_function', 'method_definition',
})

# Expression wrappers that do not change which module a value refers to
WRAPPER_NODES = frozenset({
    'parenthesized_expression', 'as_expression', 'satisfies_expression',
    'non_null_expression', 'type_assertion',
})

TYPE_DECLARATIONS = frozenset({'interface_declaration', 'type_alias_declaration'})

# ModuleRef: (target module or None when unresolved, specifier text)
ModuleRef = Tuple[Optional[Path], Optional[str]]


def node_text(node: Node) -> str:
    return node.text.decode('utf-8', errors='replace')


def named(node: Optional[Node]) -> List[Node]:
    """Named children without comments (comments may appear anywhere)."""
    if node is None:
        return []
    return [child for child in node.named_children if child.type != 'comment']


def unquote(node: Node) -> Optional[str]:
    """Text of a string literal, or of a template literal without substitutions."""
    if node.type == 'template_string':
        if any(child.type == 'template_substitution' for child in node.named_children):
            return None
    elif node.type != 'string':
        return None
    return node_text(node)[1:-1]


def has_token(node: Node, token: str) -> bool:
    """True if an anonymous child token (keyword or punctuation) is present."""
    return any(not child.is_named and child.type == token for child in node.children)


class ModuleExtractor:
    """Single-pass extractor for one module.

    Usage:
        facts = ModuleExtractor(path, resolver).extract(tree)
    """

    def __init__(self, module: Path, resolver: Resolver):
        self.module = module
        self.resolver = resolver
        self.exports = ModuleExports()
        self.usages: List[Tuple[Path, str]] = []
        self.diagnostics: List[Diagnostic] = []
        self.aliases = AliasScope()

        self._resolved: Dict[Tuple[str, ReferenceKind], Optional[Path]] = {}
        # node id of a `.then()` callback -> module bound to its first parameter
        self._callback_targets: Dict[int, ModuleRef] = {}
        self._local_types: Set[str] = set()

        # Handlers return True when they opened a scope that must be closed
        # after the node's subtree has been visited.
        self._enter_handlers: Dict[str, Callable[[Node], Optional[bool]]] = {
            'import_statement': self._enter_nested_import,
            'export_statement': self._enter_export,
            'variable_declarator': self._enter_declarator,
            'member_expression': self._enter_member,
            'subscript_expression': self._enter_subscript,
            'nested_type_identifier': self._enter_type_member,
            'call_expression': self._enter_call,
            'statement_block': self._enter_block,
            'catch_clause': self._enter_catch,
            'for_statement': self._enter_block,
            'for_in_statement': self._enter_for_in,
        }
        for kind in FUNCTION_NODES:
            self._enter_handlers[kind] = self._enter_function

        self._declaration_handlers: Dict[str, Callable[[Node], None]] = {
            'function_declaration': self._export_named_declaration,
            'generator_function_declaration': self._export_named_declaration,
            'function_signature': self._export_named_declaration,
            'class_declaration': self._export_named_declaration,
            'abstract_class_declaration': self._export_named_declaration,
            'enum_declaration': self._export_named_declaration,
            'module': self._export_namespace_declaration,
            'internal_module': self._export_namespace_declaration,
            'interface_declaration': self._export_type_declaration,
            'type_alias_declaration': self._export_type_declaration,
            'lexical_declaration': self._export_variable_declaration,
            'variable_declaration': self._export_variable_declaration,
            'ambient_declaration': self._export_ambient_declaration,
            'import_alias': self._export_import_alias,
        }

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def extract(self, tree: Tree) -> FileFacts:
        root = tree.root_node
        self._local_types = self._collect_local_types(root)

        # Imports are hoisted: bind them before any code that uses them
        for statement in named(root):
            if statement.type == 'import_statement':
                self._enter_import(statement)

        stack: List[Tuple[Node, bool]] = [(root, False)]
        while stack:
            node, leaving = stack.pop()
            if leaving:
                self.aliases.pop()
                continue

            handler = self._enter_handlers.get(node.type)
            if handler is not None and handler(node):
                stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.named_children))

        return FileFacts(
            module=self.module,
            exports=self.exports,
            usages=self.usages,
            diagnostics=self.diagnostics,
        )

    def _collect_local_types(self, root: Node) -> Set[str]:
        """Names that only exist as types at module level (for `export { Name }`)."""
        types: Set[str] = set()
        values: Set[str] = set()

        def visit_declaration(decl: Node) -> None:
            if decl.type in TYPE_DECLARATIONS:
                name = decl.child_by_field_name('name')
                if name is not None:
                    types.add(node_text(name))
            elif decl.type == 'ambient_declaration':
                for inner in named(decl):
                    visit_declaration(inner)
            elif decl.type in ('lexical_declaration', 'variable_declaration'):
                for declarator in named(decl):
                    pattern = declarator.child_by_field_name('name')
                    if pattern is not None:
                        values.update(self._bound_names(pattern))
            else:
                name = decl.child_by_field_name('name')
                if name is not None and name.type in ('identifier', 'type_identifier'):
                    values.add(node_text(name))

        for statement in named(root):
            if statement.type == 'export_statement':
                declaration = statement.child_by_field_name('declaration')
                if declaration is not None:
                    visit_declaration(declaration)
            elif statement.type == 'import_statement':
                self._collect_import_names(statement, types, values)
            else:
                visit_declaration(statement)

        return types - values

    def _collect_import_names(self, statement: Node, types: Set[str], values: Set[str]) -> None:
        type_only = has_token(statement, 'type')
        for clause in named(statement):
            if clause.type != 'import_clause':
                continue
            for child in named(clause):
                if child.type == 'identifier':
                    (types if type_only else values).add(node_text(child))
                elif child.type == 'namespace_import':
                    for ident in named(child):
                        (types if type_only else values).add(node_text(ident))
                elif child.type == 'named_imports':
                    for specifier in named(child):
                        local = specifier.child_by_field_name('alias') or specifier.child_by_field_name('name')
                        if local is None:
                            continue
                        is_type = type_only or has_token(specifier, 'type')
                        (types if is_type else values).add(node_text(local))

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _enter_import(self, node: Node) -> None:
        require_clause = self._first_of(node, 'import_require_clause')
        if require_clause is not None:
            self._bind_import_require(require_clause)
            return

        source = node.child_by_field_name('source')
        clause = self._first_of(node, 'import_clause')
        if source is None or clause is None:
            # Side-effect import: import './polyfills'
            return

        specifier = unquote(source)
        target = self._resolve(specifier, ReferenceKind.IMPORT, node)

        for child in named(clause):
            if child.type == 'identifier':
                # Default import: import x from 'mod'
                self._record_usage(target, DEFAULT_EXPORT)

            elif child.type == 'namespace_import':
                # Namespace import: import * as ns from 'mod'
                for ident in named(child):
                    if ident.type == 'identifier':
                        self.aliases.bind(node_text(ident), target, specifier)

            elif child.type == 'named_imports':
                # Named imports: import { x, y as z, type T } from 'mod'
                for import_spec in named(child):
                    if import_spec.type != 'import_specifier':
                        continue
                    name_node = import_spec.child_by_field_name('name')
                    if name_node is not None:
                        self._record_usage(target, self._export_name(name_node))

            else:
                self._diagnose(child, f"unrecognized import clause '{child.type}'")

    def _enter_nested_import(self, node: Node) -> None:
        # Top-level imports were already handled before the walk
        if node.parent is not None and node.parent.type != 'program':
            self._enter_import(node)

    def _bind_import_require(self, clause: Node) -> None:
        """TypeScript `import x = require('mod')` binds x like a namespace import."""
        ident = self._first_of(clause, 'identifier')
        source = clause.child_by_field_name('source') or self._first_of(clause, 'string')
        if ident is None or source is None:
            self._diagnose(clause, "unrecognized import-require form")
            return
        specifier = unquote(source)
        target = self._resolve(specifier, ReferenceKind.REQUIRE, clause)
        self.aliases.bind(node_text(ident), target, specifier)

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def _enter_export(self, node: Node) -> None:
        if node.parent is not None and node.parent.type != 'program':
            # Members of `namespace N { export ... }` or `declare module 'x' { ... }`
            return
        type_only = has_token(node, 'type')
        source = node.child_by_field_name('source')
        if source is not None:
            self._export_from(node, source, type_only)
            return

        if has_token(node, 'default'):
            # export default <declaration | expression>
            self._record_export(DEFAULT_EXPORT, DEFAULT_EXPORT)
            return

        declaration = node.child_by_field_name('declaration')
        if declaration is not None:
            handler = self._declaration_handlers.get(declaration.type)
            if handler is None:
                self._diagnose(declaration, f"unrecognized export declaration '{declaration.type}'")
            else:
                handler(declaration)
            return

        clause = self._first_of(node, 'export_clause')
        if clause is not None:
            for specifier in named(clause):
                original, exported = self._export_specifier_names(specifier)
                is_type = (type_only or has_token(specifier, 'type')
                           or original in self._local_types)
                self._record_export(exported, self._table_name(original, exported), type_only=is_type)
            return

        require_clause = self._first_of(node, 'import_require_clause')
        if require_clause is not None:
            # export import A = require('mod')
            ident = self._first_of(require_clause, 'identifier')
            if ident is not None:
                self._record_export(node_text(ident), node_text(ident))
            self._bind_import_require(require_clause)
            return

        if has_token(node, '='):
            self._diagnose(node, "`export =` assignment is not tracked")
        elif has_token(node, 'namespace'):
            self._diagnose(node, "`export as namespace` is not tracked")
        else:
            self._diagnose(node, "unrecognized export statement")

    def _export_from(self, node: Node, source: Node, type_only: bool) -> None:
        specifier = unquote(source)
        namespace_export = self._first_of(node, 'namespace_export')
        clause = self._first_of(node, 'export_clause')

        if namespace_export is None and clause is None:
            # export * from 'mod': not an export of its own, only an edge
            target = self._resolve(specifier, ReferenceKind.EXPORT_ALL, node)
            if target is not None:
                self.exports.export_all.append(target)
            return

        target = self._resolve(specifier, ReferenceKind.EXPORT_FROM, node)
        if namespace_export is not None:
            # export * as ns from 'mod'
            name_nodes = named(namespace_export)
            if not name_nodes:
                self._diagnose(namespace_export, "namespace re-export without a name")
                return
            name = self._export_name(name_nodes[-1])
            self._record_export(name, name)
            return

        # export { a, b as c } from 'mod': declares a/c here, consumes a/b there
        for export_spec in named(clause):
            original, exported = self._export_specifier_names(export_spec)
            is_type = type_only or has_token(export_spec, 'type')
            self._record_export(exported, self._table_name(original, exported), type_only=is_type)
            self._record_usage(target, original)

    def _export_specifier_names(self, specifier: Node) -> Tuple[str, str]:
        name_node = specifier.child_by_field_name('name')
        if name_node is None:
            self._malformed(specifier, "export specifier")
        alias_node = specifier.child_by_field_name('alias')
        original = self._export_name(name_node)
        exported = self._export_name(alias_node) if alias_node is not None else original
        return original, exported

    @staticmethod
    def _table_name(original: str, exported: str) -> str:
        """Original name kept in the export table; `x as default` is stored as default."""
        return DEFAULT_EXPORT if exported == DEFAULT_EXPORT else original

    def _export_named_declaration(self, decl: Node) -> None:
        name = decl.child_by_field_name('name')
        if name is None:
            self._malformed(decl, "exported declaration")
        self._record_export(node_text(name), node_text(name))

    def _export_type_declaration(self, decl: Node) -> None:
        name = decl.child_by_field_name('name')
        if name is None:
            self._malformed(decl, "exported type declaration")
        self._record_export(node_text(name), node_text(name), type_only=True)

    def _export_namespace_declaration(self, decl: Node) -> None:
        name = decl.child_by_field_name('name')
        if name is None or name.type == 'string':
            self._diagnose(decl, "ambient module declaration is not an export")
            return
        if name.type == 'nested_identifier':
            # namespace A.B.C {} exports A
            name = named(name)[0]
            while name.type == 'nested_identifier':
                name = named(name)[0]
        self._record_export(node_text(name), node_text(name))

    def _export_variable_declaration(self, decl: Node) -> None:
        for declarator in named(decl):
            if declarator.type != 'variable_declarator':
                self._malformed(declarator, "exported variable declaration")
            pattern = declarator.child_by_field_name('name')
            if pattern is None:
                self._malformed(declarator, "exported variable declarator")
            for exported, local in self._export_pattern_names(pattern):
                self._record_export(exported, local)

    def _export_ambient_declaration(self, decl: Node) -> None:
        for inner in named(decl):
            handler = self._declaration_handlers.get(inner.type)
            if handler is not None:
                handler(inner)
                return
        self._diagnose(decl, "ambient declaration without an exported name")

    def _export_import_alias(self, decl: Node) -> None:
        ident = self._first_of(decl, 'identifier')
        if ident is None:
            self._malformed(decl, "exported import alias")
        self._record_export(node_text(ident), node_text(ident))

    def _export_pattern_names(self, pattern: Node) -> List[Tuple[str, str]]:
        """(exported, local) pairs of an exported binding pattern.

        export const [a, b] = ...        -> (a, a), (b, b)
        export const {a, b: c} = ...     -> (a, a), (b, c)
        export const {b: {d}} = ...      -> (d, d)
        """
        kind = pattern.type
        if kind in ('identifier', 'shorthand_property_identifier_pattern'):
            name = node_text(pattern)
            return [(name, name)]
        if kind in ('object_pattern', 'array_pattern'):
            pairs = []
            for element in named(pattern):
                pairs.extend(self._export_pattern_names(element))
            return pairs
        if kind == 'pair_pattern':
            key = pattern.child_by_field_name('key')
            value = pattern.child_by_field_name('value')
            if key is None or value is None:
                self._malformed(pattern, "exported object pattern")
            local = value
            if local.type == 'assignment_pattern' and local.child_by_field_name('left') is not None:
                # export const { b: c = fallback } = obj
                local = local.child_by_field_name('left')
            if local.type != 'identifier':
                # Nested pattern under the key exports its own bindings
                return self._export_pattern_names(value)
            if key.type in ('property_identifier', 'number'):
                return [(node_text(key), node_text(local))]
            if key.type == 'string':
                return [(unquote(key), node_text(local))]
            self._diagnose(key, "computed key in exported pattern; exported under its binding name")
            return [(node_text(local), node_text(local))]
        if kind in ('object_assignment_pattern', 'assignment_pattern'):
            left = pattern.child_by_field_name('left')
            if left is None:
                self._malformed(pattern, "exported pattern default")
            return self._export_pattern_names(left)
        if kind == 'rest_pattern':
            inner = named(pattern)
            if not inner:
                self._malformed(pattern, "exported rest element")
            return self._export_pattern_names(inner[0])
        self._malformed(pattern, "exported binding pattern")

    # ------------------------------------------------------------------
    # Bindings and references
    # ------------------------------------------------------------------

    def _enter_declarator(self, node: Node) -> None:
        pattern = node.child_by_field_name('name')
        if pattern is None:
            return
        hoist = node.parent is not None and node.parent.type == 'variable_declaration'
        value = node.child_by_field_name('value')
        ref = self._module_ref(value) if value is not None else None

        if ref is not None:
            target, specifier = ref
            if pattern.type == 'identifier':
                # const utils = require('./utils') / await import('./utils') / otherAlias
                self.aliases.bind(node_text(pattern), target, specifier, hoist=hoist)
                return
            if pattern.type == 'object_pattern':
                # const { a, b: local } = require('./utils')
                if target is not None:
                    self._record_destructured(target, pattern)
            else:
                self._diagnose(pattern, f"'{pattern.type}' destructuring of a module is not tracked")

        for name in self._bound_names(pattern):
            self.aliases.shadow(name, hoist=hoist)

    def _enter_member(self, node: Node) -> None:
        obj = node.child_by_field_name('object')
        prop = node.child_by_field_name('property')
        if obj is None or prop is None:
            return
        ref = self._module_ref(obj)
        if ref is None or ref[0] is None:
            return
        if prop.type == 'property_identifier':
            # ns.X, require('./mod').X, (await import('./mod')).X
            self._record_usage(ref[0], node_text(prop))
        elif prop.type != 'private_property_identifier':
            self._diagnose(prop, f"unrecognized member access '{prop.type}' on module")

    def _enter_subscript(self, node: Node) -> None:
        obj = node.child_by_field_name('object')
        index = node.child_by_field_name('index')
        if obj is None or index is None:
            return
        ref = self._module_ref(obj)
        if ref is None or ref[0] is None:
            return
        name = unquote(index)
        if name is None:
            self._diagnose(index, "computed member access on a module is not tracked")
            return
        self._record_usage(ref[0], name)

    def _enter_type_member(self, node: Node) -> None:
        # Type position: let x: ns.SomeType
        module = node.child_by_field_name('module')
        name = node.child_by_field_name('name')
        if module is None or name is None or module.type != 'identifier':
            return
        target = self.aliases.lookup(node_text(module))
        if target is not None:
            self._record_usage(target, node_text(name))

    def _enter_call(self, node: Node) -> None:
        # import('./mod').then(mod => ...)
        func = node.child_by_field_name('function')
        if func is None or func.type != 'member_expression':
            return
        prop = func.child_by_field_name('property')
        if prop is None or node_text(prop) != 'then':
            return
        obj = self._unwrap(func.child_by_field_name('object'))
        if obj is None or obj.type != 'call_expression' or not self._is_dynamic_import(obj):
            return

        specifier = self._literal_argument(obj)
        target = self._resolve(specifier, ReferenceKind.DYNAMIC_IMPORT, obj) if specifier else None
        callbacks = named(node.child_by_field_name('arguments'))
        if not callbacks:
            return
        callback = callbacks[0]
        if callback.type in FUNCTION_NODES:
            self._callback_targets[callback.id] = (target, specifier)
        else:
            self._diagnose(callback, "`.then()` callback is not an inline function; its usages are not tracked")

    def _enter_function(self, node: Node) -> bool:
        self.aliases.push(is_function=True)
        params = self._parameters(node)
        callback = self._callback_targets.pop(node.id, None)

        if callback is not None and params:
            target, specifier = callback
            first = self._parameter_pattern(params[0])
            if first.type == 'identifier':
                self.aliases.bind(node_text(first), target, specifier)
            elif first.type == 'object_pattern':
                # import('./mod').then(({ a, b }) => ...)
                if target is not None:
                    self._record_destructured(target, first)
                for name in self._bound_names(first):
                    self.aliases.shadow(name)
            else:
                self._diagnose(first, f"unrecognized `.then()` parameter '{first.type}'")
            params = params[1:]

        for param in params:
            for name in self._bound_names(param):
                self.aliases.shadow(name)
        return True

    def _enter_block(self, node: Node) -> bool:
        self.aliases.push()
        return True

    def _enter_for_in(self, node: Node) -> bool:
        # for (const lib of items): the loop variable lives in the loop's own scope
        self.aliases.push()
        kind = node.child_by_field_name('kind')
        keyword = node_text(kind) if kind is not None else next(
            (k for k in ('const', 'let', 'var') if has_token(node, k)), None)
        left = node.child_by_field_name('left')
        if keyword is not None and left is not None:
            for name in self._bound_names(left):
                self.aliases.shadow(name, hoist=keyword == 'var')
        return True

    def _enter_catch(self, node: Node) -> bool:
        self.aliases.push()
        param = node.child_by_field_name('parameter')
        if param is not None:
            for name in self._bound_names(param):
                self.aliases.shadow(name)
        return True

    def _record_destructured(self, target: Path, pattern: Node) -> None:
        """Each destructured key of a module object is a usage of that export."""
        for prop in named(pattern):
            kind = prop.type
            if kind == 'shorthand_property_identifier_pattern':
                self._record_usage(target, node_text(prop))
            elif kind == 'object_assignment_pattern':
                # const { a = fallback } = mod
                left = prop.child_by_field_name('left')
                if left is None or left.type != 'shorthand_property_identifier_pattern':
                    self._malformed(prop, "destructured module property")
                self._record_usage(target, node_text(left))
            elif kind == 'pair_pattern':
                # const { a: local } = mod
                key = prop.child_by_field_name('key')
                if key is None:
                    self._malformed(prop, "destructured module property")
                if key.type in ('property_identifier', 'number'):
                    self._record_usage(target, node_text(key))
                elif key.type == 'string':
                    self._record_usage(target, unquote(key))
                elif key.type == 'computed_property_name':
                    self._diagnose(key, "computed key in module destructuring is not tracked")
                else:
                    self._malformed(key, "destructured module key")
            elif kind == 'rest_pattern':
                self._diagnose(prop, "rest element in module destructuring; remaining exports are not tracked")
            else:
                self._malformed(prop, "module destructuring pattern")

    # ------------------------------------------------------------------
    # Module expressions
    # ------------------------------------------------------------------

    def _module_ref(self, expr: Optional[Node]) -> Optional[ModuleRef]:
        """Which module an expression evaluates to, if it is a module object.

        Recognized: a bound alias, require('x'), await import('x'), each
        optionally parenthesized or wrapped in a type assertion.
        Returns None for anything else; (None, spec) for module expressions
        whose target could not be resolved.
        """
        awaited = False
        node = expr
        while node is not None:
            if node.type in WRAPPER_NODES:
                node = self._unwrap_once(node)
            elif node.type == 'await_expression':
                awaited = True
                inner = named(node)
                node = inner[0] if inner else None
            else:
                break
        if node is None:
            return None

        if node.type == 'identifier':
            alias = self.aliases.lookup_alias(node_text(node))
            return (alias.target, alias.source_module) if alias else None

        if node.type != 'call_expression':
            return None
        if self._is_require(node):
            kind = ReferenceKind.REQUIRE
        elif self._is_dynamic_import(node) and awaited:
            kind = ReferenceKind.DYNAMIC_IMPORT
        else:
            return None

        specifier = self._literal_argument(node)
        if specifier is None:
            return None, None
        return self._resolve(specifier, kind, node), specifier

    def _is_require(self, call: Node) -> bool:
        func = call.child_by_field_name('function')
        return func is not None and func.type == 'identifier' and node_text(func) == 'require'

    def _is_dynamic_import(self, call: Node) -> bool:
        func = call.child_by_field_name('function')
        return func is not None and func.type == 'import'

    def _literal_argument(self, call: Node) -> Optional[str]:
        args = named(call.child_by_field_name('arguments'))
        if not args:
            self._diagnose(call, "module call without a specifier")
            return None
        specifier = unquote(args[0])
        if specifier is None:
            self._diagnose(args[0], "non-literal module specifier is not tracked")
        return specifier

    def _unwrap(self, node: Optional[Node]) -> Optional[Node]:
        while node is not None and node.type in WRAPPER_NODES:
            node = self._unwrap_once(node)
        return node

    @staticmethod
    def _unwrap_once(node: Node) -> Optional[Node]:
        inner = named(node)
        if not inner:
            return None
        # <T>expr keeps the expression last; every other wrapper keeps it first
        return inner[-1] if node.type == 'type_assertion' else inner[0]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _parameters(self, fn: Node) -> List[Node]:
        single = fn.child_by_field_name('parameter')
        if single is not None:
            return [single]
        return named(fn.child_by_field_name('parameters'))

    @staticmethod
    def _parameter_pattern(param: Node) -> Node:
        if param.type in ('required_parameter', 'optional_parameter'):
            return param.child_by_field_name('pattern') or param
        if param.type == 'assignment_pattern':
            return param.child_by_field_name('left') or param
        return param

    def _bound_names(self, pattern: Node) -> List[str]:
        """Identifiers a (parameter or declaration) pattern introduces."""
        kind = pattern.type
        if kind in ('identifier', 'shorthand_property_identifier_pattern'):
            return [node_text(pattern)]
        if kind in ('required_parameter', 'optional_parameter'):
            inner = pattern.child_by_field_name('pattern')
            return self._bound_names(inner) if inner is not None else []
        if kind in ('assignment_pattern', 'object_assignment_pattern'):
            left = pattern.child_by_field_name('left')
            return self._bound_names(left) if left is not None else []
        if kind == 'pair_pattern':
            value = pattern.child_by_field_name('value')
            return self._bound_names(value) if value is not None else []
        if kind in ('object_pattern', 'array_pattern', 'rest_pattern'):
            names = []
            for child in named(pattern):
                names.extend(self._bound_names(child))
            return names
        return []

    def _export_name(self, node: Node) -> str:
        """Identifier text, or the value of a string export name (export { x as "a b" })."""
        if node.type == 'string':
            return unquote(node)
        return node_text(node)

    @staticmethod
    def _first_of(node: Node, kind: str) -> Optional[Node]:
        for child in node.named_children:
            if child.type == kind:
                return child
        return None

    def _resolve(self, specifier: Optional[str], kind: ReferenceKind, node: Node) -> Optional[Path]:
        if specifier is None:
            return None
        key = (specifier, kind)
        if key in self._resolved:
            return self._resolved[key]

        outcome = self.resolver.resolve(specifier, self.module, kind)
        target = None
        if isinstance(outcome, ResolvedModule):
            target = outcome.path
        elif isinstance(outcome, ResolutionFailure):
            logger.warning("%s:%d: %s", self.module, node.start_point[0] + 1, outcome.message)
            self._diagnose(node, f"unresolved {kind.value} '{specifier}'")
        else:
            logger.debug("Skipping %s '%s' in %s: %s", kind.value, specifier, self.module, outcome)

        self._resolved[key] = target
        return target

    def _record_usage(self, target: Optional[Path], symbol: Optional[str]) -> None:
        if target is not None and symbol is not None:
            self.usages.append((target, symbol))

    def _record_export(self, exported: str, original: str, type_only: bool = False) -> None:
        table = self.exports.type_exports if type_only else self.exports.value_exports
        table[exported] = original

    def _diagnose(self, node: Node, message: str) -> None:
        line = node.start_point[0] + 1
        logger.debug("%s:%d: %s", self.module, line, message)
        self.diagnostics.append(Diagnostic(self.module, line, message))

    def _malformed(self, node: Node, context: str):
        raise MalformedSyntaxError(self.module, node.start_point[0] + 1, node.type, context)


def extract_module(module: Path, tree: Tree, resolver: Resolver) -> FileFacts:
    """Run the extractor without touching shared state (the map step)."""
    return ModuleExtractor(module, resolver).extract(tree)


def analyze_module(context: AnalysisContext, module: Path, tree: Tree, resolver: Resolver) -> FileFacts:
    """Extract one module and commit its facts into the run's context.

    Raises:
        MalformedSyntaxError: The module contains a pattern that cannot be
            interpreted; nothing from it is committed.
    """
    facts = extract_module(module, tree, resolver)
    context.commit(facts)
    return facts
