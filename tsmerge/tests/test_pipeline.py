from __future__ import annotations

import logging

import pytest

from tsmerge.config import ComposeOptions
from tsmerge.errors import CompositionError, ParseError
from tsmerge.parser import parse_unit
from tsmerge.pipeline import SourceText, compose_units, merge_modules_into_base

BASE = SourceText(
    "base.ts",
    """import { prop, PubKey, SmartContract } from 'scrypt-ts'

export class Base extends SmartContract {
    @prop()
    partyA: PubKey

    @prop()
    partyB: PubKey

    constructor(partyA: PubKey, partyB: PubKey) {
        super(...arguments)
        this.partyA = partyA
        this.partyB = partyB
    }
}
""",
)

M1 = SourceText(
    "m1.ts",
    """import { assert, method, prop } from 'scrypt-ts'
import { Base } from './base'

export class M1 extends Base {
    @prop(true)
    counter: bigint

    @method()
    public increment() {
        this.counter++
        assert(true)
    }
}
""",
)

COMPOSITE = """import { PubKey, SmartContract, assert, method, prop } from 'scrypt-ts';

export class Composite extends SmartContract {
    @prop()
    partyA: PubKey;

    @prop()
    partyB: PubKey;

    @prop(true)
    counter: bigint;

    constructor(partyA: PubKey, partyB: PubKey, counter: bigint) {
        super(...arguments);
        this.partyA = partyA;
        this.partyB = partyB;
        this.counter = counter;
    }

    @method()
    public increment() {
        this.counter++;
        assert(true);
    }
}
"""


def test_composite_scenario():
    composition = compose_units(BASE, [M1], "Composite")

    merged = composition.merged
    assert merged.name == "Composite"
    assert [p.name for p in merged.properties] == ["partyA", "partyB", "counter"]
    assert [p.name for p in merged.constructor.params] == ["partyA", "partyB", "counter"]
    assert [m.name for m in merged.methods] == ["increment"]
    assert composition.text == COMPOSITE


def test_merge_modules_into_base_returns_text():
    assert merge_modules_into_base(BASE, [M1], "Composite") == COMPOSITE


def test_composition_is_deterministic():
    first = compose_units(BASE, [M1], "Composite").text
    second = compose_units(BASE, [M1], "Composite").text
    assert first == second


def test_emitted_text_round_trips(fixture_source):
    composition = compose_units(
        fixture_source("base.ts"),
        [fixture_source("daily_valuation.ts")],
        "ScryptDynamicContractDemo",
    )

    reparsed = parse_unit(composition.text, name="scryptDynamicContractDemo.ts")

    assert len(reparsed.classes) == 1
    cls = reparsed.classes[0]
    merged = composition.merged
    assert cls.name == merged.name
    assert cls.heritage == merged.heritage
    assert cls.properties == merged.properties
    assert cls.constructor == merged.constructor
    assert cls.methods == merged.methods
    assert reparsed.type_aliases == composition.type_aliases
    assert reparsed.import_of("scrypt-ts") == composition.imports.shared


def test_fixture_composition_layout(fixture_source):
    text = compose_units(
        fixture_source("base.ts"),
        [fixture_source("daily_valuation.ts")],
        "ScryptDynamicContractDemo",
    ).text

    assert text.startswith(
        "import { PubKey, Sha256, Sig, SmartContract, assert, hash256, method, prop } from 'scrypt-ts';\n\n"
        "export type VMAccountData = {\n    txid: Sha256,\n    balance: bigint\n};\n\n"
        "export class ScryptDynamicContractDemo extends SmartContract {\n"
    )
    assert (
        "    constructor(party1: PubKey, party2: PubKey, vmAccountDataParty1: VMAccountData, "
        "vmAccountDataParty2: VMAccountData) {\n"
        "        super(...arguments);\n"
    ) in text
    # module-only statements are not carried over
    assert "../base" not in text


def test_base_passthrough_and_aliases_precede_module_aliases():
    base = SourceText(
        "base.ts",
        "import { helper } from './helper'\ntype Id = bigint\nclass Base extends S {}\n",
    )
    module = SourceText("m.ts", "type Score = bigint\nclass M {\n    score: Score\n}\n")

    text = compose_units(base, [module], "Composite").text

    assert text.startswith(
        "import {} from 'scrypt-ts';\n\n"
        "import { helper } from './helper';\n\n"
        "type Id = bigint;\ntype Score = bigint;\n\n"
        "class Composite extends S {\n"
    )


def test_module_classes_from_every_unit_in_order():
    base = SourceText("base.ts", "class Base extends S {}\n")
    first = SourceText("a.ts", "class A {\n    a() {}\n}\nclass B {\n    b() {}\n}\n")
    second = SourceText("c.ts", "class C {\n    c() {}\n}\n")

    merged = compose_units(base, [first, second], "Composite").merged

    assert [m.name for m in merged.methods] == ["a", "b", "c"]


def test_extra_base_classes_are_ignored_with_warning(caplog):
    base = SourceText("base.ts", "class Base extends S {}\nclass Extra {\n    x: bigint\n}\n")
    module = SourceText("m.ts", "class M {}\n")

    with caplog.at_level(logging.WARNING, logger="tsmerge.pipeline"):
        merged = compose_units(base, [module], "Composite").merged

    assert merged.properties == ()
    assert "declares 2 classes" in caplog.text


def test_empty_module_list_fails():
    with pytest.raises(CompositionError, match="no module classes"):
        compose_units(BASE, [], "Composite")


def test_modules_without_classes_fail():
    with pytest.raises(CompositionError, match="no module classes"):
        compose_units(BASE, [SourceText("m.ts", "const x = 1\n")], "Composite")


def test_base_without_class_fails():
    with pytest.raises(CompositionError, match="no base class"):
        compose_units(SourceText("base.ts", "const x = 1\n"), [M1], "Composite")


def test_parse_error_names_the_module_unit():
    with pytest.raises(ParseError) as excinfo:
        compose_units(BASE, [SourceText("bad.ts", "class M { #x: bigint }\n")], "Composite")
    assert excinfo.value.unit == "bad.ts"


def test_options_control_library_and_indent():
    options = ComposeOptions(library="my-lib", indent="  ")
    base = SourceText("base.ts", "import { a } from 'my-lib'\nclass Base extends S {}\n")
    module = SourceText("m.ts", "import { b } from 'my-lib'\nclass M {\n    x: bigint\n}\n")

    text = compose_units(base, [module], "Composite", options).text

    assert text.startswith("import { a, b } from 'my-lib';\n")
    assert "\n  x: bigint;\n" in text


def test_source_text_from_path(tmp_path):
    path = tmp_path / "base.ts"
    path.write_text("class Base {}\n", encoding="utf-8")

    src = SourceText.from_path(path)

    assert src.name == str(path)
    assert src.text == "class Base {}\n"


def test_module_constructor_is_excluded(fixture_source):
    merged = compose_units(
        fixture_source("base.ts"),
        [fixture_source("daily_valuation.ts"), fixture_source("demo.ts")],
        "ScryptDynamicContractDemo",
    ).merged

    assert [p.name for p in merged.properties] == [
        "party1",
        "party2",
        "vmAccountDataParty1",
        "vmAccountDataParty2",
        "a",
        "b",
    ]
    assert [m.name for m in merged.methods] == ["dailyValuation", "unlock"]
    assert len(merged.constructor.body.statements) == 7


def test_statement_ending_in_brace_stays_terminated():
    module = SourceText(
        "m.ts",
        "class M {\n    run() {\n        const a = { x: 1 };\n        [1, 2].forEach(print)\n    }\n}\n",
    )

    composition = compose_units(BASE, [module], "Composite")

    assert "        const a = { x: 1 };\n        [1, 2].forEach(print);\n" in composition.text
    reparsed = parse_unit(composition.text).classes[0]
    assert reparsed.methods == composition.merged.methods


def test_template_literal_content_is_not_reindented():
    module = SourceText(
        "m.ts",
        "class M {\n    run() {\n        const s = `line1\nraw   \n  two`\n        return s\n    }\n}\n",
    )

    composition = compose_units(BASE, [module], "Composite")

    assert "        const s = `line1\nraw   \n  two`;\n        return s;\n" in composition.text
    reparsed = parse_unit(composition.text).classes[0]
    assert reparsed.methods == composition.merged.methods
