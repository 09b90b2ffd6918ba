"""AliasScope frame semantics."""
from pathlib import Path

import pytest

from ts_deadcode.analyzer.alias_scope import AliasScope

UTILS = Path('/project/utils.ts')
API = Path('/project/api.ts')


def test_bind_and_lookup():
    scope = AliasScope()
    scope.bind('utils', UTILS, './utils')

    assert scope.lookup('utils') == UTILS
    assert scope.lookup_alias('utils').source_module == './utils'
    assert scope.lookup('other') is None


def test_inner_binding_is_restored_on_pop():
    scope = AliasScope()
    scope.bind('mod', UTILS)

    scope.push(is_function=True)
    scope.bind('mod', API)
    assert scope.lookup('mod') == API

    scope.pop()
    assert scope.lookup('mod') == UTILS


def test_shadow_hides_outer_alias():
    scope = AliasScope()
    scope.bind('mod', UTILS)
    scope.push()
    scope.shadow('mod')

    assert scope.lookup('mod') is None
    assert scope.lookup_alias('mod') is None

    scope.pop()
    assert scope.lookup('mod') == UTILS


def test_shadow_of_plain_name_adds_nothing():
    scope = AliasScope()
    scope.shadow('value')

    assert scope.lookup_alias('value') is None
    assert scope.lookup('value') is None


def test_hoisted_binding_outlives_block():
    scope = AliasScope()
    scope.bind('mod', UTILS)
    scope.push(is_function=True)
    scope.push()
    scope.shadow('mod', hoist=True)
    scope.pop()

    assert scope.lookup('mod') is None, "var declarations belong to the function scope"

    scope.pop()
    assert scope.lookup('mod') == UTILS


def test_module_scope_cannot_be_popped():
    scope = AliasScope()

    with pytest.raises(RuntimeError):
        scope.pop()

    scope.bind('mod', UTILS)
    assert scope.lookup('mod') == UTILS, "the module scope survives a failed pop"
