from __future__ import annotations

import anyio
import pytest

from singletable.errors import CardinalityViolation
from singletable.mapping.aggregate import AggregateReconstructor, EntityKind, role_of
from singletable.mapping.projection import FieldPolicy, MapContext, ProjectionMapper, sort_key_transform

THING = ProjectionMapper(FieldPolicy(rename={"pk": "id", "data": "name"}))
RELATED = ProjectionMapper(
    FieldPolicy(rename={"sk": "id", "data": "name"}, transform={"sk": sort_key_transform})
)


def _run(reconstructor, records, ctx=None):
    return anyio.run(lambda: reconstructor(records, ctx))


def test_folds_relations_by_role_and_cardinality():
    reconstruct = AggregateReconstructor.from_tables(
        "thing",
        {"one2many": 999, "many2many": 999, "one2one": 1},
        {"thing": THING, "child": RELATED, "peer": RELATED, "associate": RELATED},
    )

    async def decrypt(data):
        return data

    out = _run(
        reconstruct,
        [
            {"pk": "1", "sk": "many2many|1", "discriminator": "associate", "data": "associate1"},
            {"pk": "1", "sk": "many2many|2", "discriminator": "associate", "data": "associate2"},
            {"pk": "1", "sk": "one2many|1", "discriminator": "child", "data": "child1"},
            {"pk": "1", "sk": "one2many|2", "discriminator": "child", "data": "child2"},
            {"pk": "1", "sk": "one2many|3", "discriminator": "child", "deleted": True},
            {"pk": "1", "sk": "one2one|1", "discriminator": "peer", "data": "peer"},
            {"pk": "1", "sk": "thing", "discriminator": "thing", "data": "thing0", "f1": "v1"},
        ],
        MapContext(decrypt=decrypt),
    )

    assert out == {
        "id": "1",
        "name": "thing0",
        "f1": "v1",
        "one2many": [{"id": "1", "name": "child1"}, {"id": "2", "name": "child2"}],
        "one2one": {"id": "1", "name": "peer"},
        "many2many": [{"id": "1", "name": "associate1"}, {"id": "2", "name": "associate2"}],
    }


def test_child_before_root_yields_nested_list():
    reconstruct = AggregateReconstructor.from_tables(
        "thing", {"child": 999}, {"thing": ProjectionMapper(), "child": ProjectionMapper()}
    )

    out = _run(
        reconstruct,
        [
            {"pk": "1", "sk": "child|1", "discriminator": "child", "data": "c1", "label": "c"},
            {"pk": "1", "sk": "thing", "discriminator": "thing", "data": "t1", "title": "t"},
        ],
    )

    assert out == {"id": "1", "title": "t", "child": [{"id": "1", "label": "c"}]}


def test_single_root_is_just_its_projection():
    reconstruct = AggregateReconstructor(EntityKind("thing", policy=FieldPolicy(rename={"pk": "id", "data": "name"})))
    root = {"pk": "1", "sk": "thing", "discriminator": "thing", "data": "t", "x": 1}

    out = _run(reconstruct, [root])

    assert out == anyio.run(lambda: THING(root))


def test_relations_win_collisions_with_root_fields():
    reconstruct = AggregateReconstructor.from_tables(
        "thing", {"peer": 1}, {"thing": ProjectionMapper(), "peer": ProjectionMapper()}
    )

    out = _run(
        reconstruct,
        [
            {"pk": "1", "sk": "peer|9", "discriminator": "peer", "v": 1},
            {"pk": "1", "sk": "thing", "discriminator": "thing", "peer": "root-owned"},
        ],
    )

    assert out["peer"] == {"id": "1", "v": 1}


def test_same_role_list_keeps_input_order():
    reconstruct = AggregateReconstructor(
        EntityKind("thing"),
        [EntityKind("element", alias="elements", cardinality=999, policy=FieldPolicy(rename={"sk": "id"}, transform={"sk": sort_key_transform}))],
    )

    out = _run(
        reconstruct,
        [
            {"pk": "1", "sk": "elements|b", "discriminator": "element"},
            {"pk": "1", "sk": "thing", "discriminator": "thing"},
            {"pk": "1", "sk": "elements|a", "discriminator": "element"},
            {"pk": "1", "sk": "elements|c", "discriminator": "element"},
        ],
    )

    assert [e["id"] for e in out["elements"]] == ["b", "a", "c"]


def test_soft_deleted_records_are_dropped():
    reconstruct = AggregateReconstructor(EntityKind("thing"), [EntityKind("child", alias="kids", cardinality=5)])

    out = _run(
        reconstruct,
        [
            {"pk": "1", "sk": "thing", "discriminator": "thing"},
            {"pk": "1", "sk": "kids|1", "discriminator": "child", "deleted": None},
            {"pk": "1", "sk": "kids|2", "discriminator": "child", "deleted": True},
            {"pk": "1", "sk": "kids|3", "discriminator": "child", "deleted": False},
            {"pk": "1", "sk": "kids|4", "discriminator": "child"},
        ],
    )

    assert len(out["kids"]) == 3


def test_deleted_root_leaves_only_relations():
    reconstruct = AggregateReconstructor(EntityKind("thing"), [EntityKind("peer", cardinality=1)])

    out = _run(
        reconstruct,
        [
            {"pk": "1", "sk": "thing", "discriminator": "thing", "name": "x", "deleted": True},
            {"pk": "1", "sk": "peer|1", "discriminator": "peer"},
        ],
    )

    assert out == {"peer": {"id": "1"}}


def test_unmapped_discriminator_passes_through_unchanged():
    reconstruct = AggregateReconstructor(EntityKind("thing"))
    stray = {"pk": "1", "sk": "audit|7", "discriminator": "audit", "who": "me"}

    out = _run(reconstruct, [{"pk": "1", "sk": "thing", "discriminator": "thing"}, stray])

    assert out["audit"] == stray


def test_sort_key_without_delimiter_uses_whole_key_as_role():
    assert role_of("settings") == "settings"
    assert role_of("a|b|c") == "a"


def test_singular_role_is_last_write_wins_by_default():
    reconstruct = AggregateReconstructor(EntityKind("thing"), [EntityKind("peer", cardinality=1)])

    out = _run(
        reconstruct,
        [
            {"pk": "1", "sk": "peer|1", "discriminator": "peer", "n": 1},
            {"pk": "1", "sk": "peer|2", "discriminator": "peer", "n": 2},
        ],
    )

    assert out["peer"]["n"] == 2


def test_strict_cardinality_rejects_duplicate_singular_role():
    reconstruct = AggregateReconstructor(
        EntityKind("thing"), [EntityKind("peer", cardinality=1)], strict_cardinality=True
    )

    with pytest.raises(CardinalityViolation) as ei:
        _run(
            reconstruct,
            [
                {"pk": "1", "sk": "peer|1", "discriminator": "peer"},
                {"pk": "1", "sk": "peer|2", "discriminator": "peer"},
            ],
        )
    assert ei.value.role == "peer"


def test_decrypt_context_reaches_every_mapper():
    decrypted: list[str] = []

    async def decrypt(record):
        decrypted.append(record["sk"])
        return record

    reconstruct = AggregateReconstructor(EntityKind("thing"), [EntityKind("child", alias="kids", cardinality=2)])

    _run(
        reconstruct,
        [
            {"pk": "1", "sk": "thing", "discriminator": "thing"},
            {"pk": "1", "sk": "kids|1", "discriminator": "child"},
        ],
        MapContext(decrypt=decrypt),
    )

    assert decrypted == ["thing", "kids|1"]
