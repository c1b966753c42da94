"""路径解析单元测试。"""

from types import SimpleNamespace

from app.packages.workspace.services.path_resolver import PathResolver, resolve_path


def _node(id, name, parent_id=None, type="file"):
    return SimpleNamespace(id=id, name=name, parent_id=parent_id, type=type)


def test_resolves_nested_chain():
    src = _node(1, "src", type="folder")
    components = _node(2, "components", 1, "folder")
    button = _node(3, "Button.jsx", 2)
    resolver = PathResolver([src, components, button])

    assert resolver.resolve(src) == "/src"
    assert resolver.resolve(button) == "/src/components/Button.jsx"


def test_dangling_parent_keeps_collected_segments():
    folder = _node(1, "lib", parent_id=99, type="folder")
    child = _node(2, "util.js", parent_id=1)
    orphan = _node(3, "orphan.js", parent_id=42)
    resolver = PathResolver([folder, child, orphan])

    assert resolver.resolve(orphan) == "/orphan.js"
    assert resolver.resolve(child) == "/lib/util.js"


def test_cycle_falls_back_to_root_level_name():
    a = _node(1, "a", parent_id=2, type="folder")
    b = _node(2, "b", parent_id=1, type="folder")
    resolver = PathResolver([a, b])

    assert resolver.resolve(a) == "/a"
    assert resolver.resolve(b) == "/b"


def test_depth_cap_falls_back_to_root_level_name():
    nodes = [_node(0, "n0", type="folder")]
    for i in range(1, 10):
        nodes.append(_node(i, f"n{i}", parent_id=i - 1, type="folder"))

    assert PathResolver(nodes, max_depth=3).resolve(nodes[-1]) == "/n9"
    assert PathResolver(nodes).resolve(nodes[-1]) == "/" + "/".join(f"n{i}" for i in range(10))


def test_added_nodes_and_invalidate():
    folder = _node(1, "src", type="folder")
    file = _node(2, "a.js")
    resolver = PathResolver([folder, file])
    assert resolver.resolve(file) == "/a.js"

    file.parent_id = 1
    # 缓存未失效前仍是旧路径
    assert resolver.resolve(file) == "/a.js"
    resolver.invalidate()
    assert resolver.resolve(file) == "/src/a.js"

    lib = _node(3, "lib", parent_id=1, type="folder")
    resolver.add(lib)
    assert resolver.get(3) is lib
    assert resolver.get(None) is None
    assert resolver.resolve(lib) == "/src/lib"


def test_duplicate_ids_first_wins():
    first = _node(1, "first", type="folder")
    second = _node(1, "second", type="folder")
    child = _node(2, "x.js", parent_id=1)

    assert resolve_path(child, [first, second, child]) == "/first/x.js"
