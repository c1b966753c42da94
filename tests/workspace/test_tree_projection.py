"""树形投影单元测试。"""

from types import SimpleNamespace

from app.packages.workspace.core.constants import PLACEHOLDER_CONTENT
from app.packages.workspace.services.tree_projection import project


def _node(id, name, parent_id=None, type="file", language="javascript", size=0):
    return SimpleNamespace(
        id=id, name=name, parent_id=parent_id, type=type, language=language, size_in_bytes=size
    )


def test_folders_first_then_case_sensitive_names():
    nodes = [
        _node(1, "b.js"),
        _node(2, "A.js"),
        _node(3, "src", type="folder"),
        _node(4, "a.js"),
        _node(5, "lib", type="folder"),
        _node(6, "main.js", parent_id=3),
    ]
    result = project(nodes, {})

    assert [item.name for item in result.hierarchy] == ["lib", "src", "A.js", "a.js", "b.js"]
    src = result.hierarchy[1]
    assert [child.path for child in src.children] == ["/src/main.js"]


def test_flat_map_contents_and_placeholders():
    nodes = [
        _node(1, "src", type="folder"),
        _node(2, "index.js", parent_id=1),
        _node(3, "empty", type="folder"),
        _node(4, "README.md"),
    ]
    result = project(nodes, {2: "console.log('hi')"})

    assert result.flat == {
        "/src/index.js": "console.log('hi')",
        "/empty/.tempdata": PLACEHOLDER_CONTENT,
        "/README.md": "",
    }


def test_duplicate_ids_are_deduplicated():
    nodes = [_node(1, "a.js"), _node(1, "a.js"), _node(2, "b.js")]
    result = project(nodes, {1: "a", 2: "b"})

    assert [item.id for item in result.hierarchy] == [1, 2]
    assert result.flat == {"/a.js": "a", "/b.js": "b"}


def test_unknown_parent_is_attached_at_root():
    nodes = [_node(1, "stray.js", parent_id=77), _node(2, "src", type="folder")]
    result = project(nodes, {1: "x"})

    assert [item.name for item in result.hierarchy] == ["src", "stray.js"]
    assert result.flat["/stray.js"] == "x"


def test_to_dict_shape():
    nodes = [
        _node(1, "src", type="folder"),
        _node(2, "App.tsx", parent_id=1, language="tsx", size=12),
    ]
    payload = project(nodes, {2: "export {};\n"}).to_dict()

    folder = payload["hierarchy"][0]
    assert folder["type"] == "folder"
    assert folder["children"][0] == {
        "id": 2,
        "name": "App.tsx",
        "type": "file",
        "path": "/src/App.tsx",
        "parentId": 1,
        "language": "tsx",
        "sizeInBytes": 12,
    }
    assert payload["files"] == {"/src/App.tsx": "export {};\n"}


def test_deep_tree_does_not_recurse_during_sort():
    nodes = [_node(0, "d0", type="folder")]
    for i in range(1, 600):
        nodes.append(_node(i, f"d{i}", parent_id=i - 1, type="folder"))
    result = project(nodes, {})

    assert len(result.hierarchy) == 1
    # 超过深度上限的节点路径回退为根级名称
    assert "/d599/.tempdata" in result.flat
