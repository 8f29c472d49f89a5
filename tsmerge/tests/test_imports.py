from __future__ import annotations

from tsmerge.imports import reconcile_imports
from tsmerge.parser import parse_unit


def test_union_of_shared_symbols_is_deduplicated_and_sorted():
    base = parse_unit("import { A, B } from 'scrypt-ts'\n")
    module = parse_unit("import { B, C } from 'scrypt-ts'\n")

    reconciled = reconcile_imports(base, [module], "scrypt-ts")

    assert reconciled.shared.library == "scrypt-ts"
    assert reconciled.shared.sorted_symbols() == ["A", "B", "C"]


def test_only_base_statements_pass_through():
    base = parse_unit(
        """
import { prop } from 'scrypt-ts'
import { helper } from './helper'
const LIMIT = 10n
"""
    )
    module = parse_unit(
        """
import { method } from 'scrypt-ts'
import { Base } from './base'
const IGNORED = 1n
"""
    )

    reconciled = reconcile_imports(base, [module], "scrypt-ts")

    assert [s.text for s in reconciled.passthrough] == ["import { helper } from './helper'", "const LIMIT = 10n"]
    assert reconciled.shared.symbols == {"prop", "method"}


def test_no_shared_imports_gives_empty_spec():
    base = parse_unit("class A {}\n")
    module = parse_unit("class B {}\n")

    reconciled = reconcile_imports(base, [module], "scrypt-ts")

    assert reconciled.shared.symbols == frozenset()
    assert reconciled.passthrough == ()


def test_library_is_configurable():
    base = parse_unit("import { prop } from 'scrypt-ts'\nimport { X } from 'other-lib'\n", library="other-lib")

    reconciled = reconcile_imports(base, [], "other-lib")

    assert reconciled.shared.symbols == {"X"}
    assert [s.text for s in reconciled.passthrough] == ["import { prop } from 'scrypt-ts'"]
