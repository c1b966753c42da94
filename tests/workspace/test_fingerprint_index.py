"""指纹索引单元测试。"""

from types import SimpleNamespace

from app.packages.workspace.services.fingerprint_index import FingerprintIndex, fingerprint
from app.packages.workspace.services.path_resolver import PathResolver


def _node(id, name, parent_id=None, type="file"):
    return SimpleNamespace(id=id, name=name, parent_id=parent_id, type=type)


def _build(nodes, contents, **kwargs):
    return FingerprintIndex.build(nodes, contents, PathResolver(nodes), **kwargs)


def test_fingerprint_is_content_prefix():
    assert fingerprint("abcdef", 3) == "abc"
    assert fingerprint("ab", 3) == "ab"
    assert fingerprint("x" * 500) == "x" * 200


def test_only_files_are_indexed():
    folder = _node(1, "src", type="folder")
    file = _node(2, "a.js", parent_id=1)
    empty = _node(3, "empty.js")
    index = _build([folder, file, empty], {2: "console.log(1)", 3: ""})

    assert set(index.by_path) == {"/src/a.js", "/empty.js"}
    # 空内容没有指纹
    assert list(index.by_fingerprint) == ["console.log(1)"]


def test_duplicate_path_keeps_first_node():
    first = _node(1, "a.js")
    second = _node(2, "a.js")
    index = _build([first, second], {1: "one", 2: "two"})

    assert index.by_path["/a.js"] is first
    # 两个节点仍然都可以通过指纹认领
    assert index.take_unclaimed("two", set()) is second


def test_take_unclaimed_uses_encounter_order():
    x = _node(1, "x.js")
    y = _node(2, "y.js")
    index = _build([x, y], {1: "shared", 2: "shared"})

    assert index.take_unclaimed("shared", set()) is x
    assert index.take_unclaimed("shared", {1}) is y
    assert index.take_unclaimed("shared", {1, 2}) is None
    assert index.take_unclaimed("unknown", set()) is None


def test_match_path_respects_claims():
    a = _node(1, "a.js")
    index = _build([a], {1: "body"})

    assert index.match_path("/a.js", set()) is a
    assert index.match_path("/a.js", {1}) is None
    assert index.match_path("/missing.js", set()) is None


def test_custom_fingerprint_length():
    a = _node(1, "a.js")
    index = _build([a], {1: "abcdef-1"}, fingerprint_length=6)

    assert index.take_unclaimed("abcdef-2", set()) is a
