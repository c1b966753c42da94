"""文件记录存储测试：约束校验、级联删除与内容读取。"""

import pytest

from app.packages.workspace.core.exceptions import AppException, ConflictError, NotFoundError
from app.packages.workspace.services.project_store import ProjectStore


def test_create_file_writes_blob_and_metadata(store, project, blob_store):
    node = store.create(project.id, None, "index.js", "file", content="console.log(1)")

    assert node.content_ref.startswith(f"projects/{project.id}/files/")
    assert node.content_ref.endswith("-index.js")
    assert node.size_in_bytes == len("console.log(1)")
    assert node.language == "javascript"
    assert blob_store.get(node.content_ref) == "console.log(1)"
    assert store.read_content(node) == "console.log(1)"


def test_sibling_names_are_unique(store, project):
    store.create(project.id, None, "a.js", "file", content="1")
    with pytest.raises(ConflictError):
        store.create(project.id, None, "a.js", "file", content="2")

    folder = store.create(project.id, None, "src", "folder")
    # 不同父目录下允许同名
    store.create(project.id, folder.id, "a.js", "file", content="3")


@pytest.mark.parametrize("name", ["", "   ", "a/b.js"])
def test_invalid_names_are_rejected(store, project, name):
    with pytest.raises(AppException) as exc_info:
        store.create(project.id, None, name, "file", content="x")
    assert exc_info.value.status_code == 400


def test_names_are_stored_verbatim(store, project):
    folder = store.create(project.id, None, "notes ", "folder")
    store.create(project.id, None, "notes", "folder")

    assert folder.name == "notes "
    with pytest.raises(ConflictError):
        store.create(project.id, None, "notes ", "folder")


def test_parent_rules(store, project, db_session_fixture):
    file = store.create(project.id, None, "a.js", "file", content="x")
    with pytest.raises(NotFoundError):
        store.create(project.id, 9999, "b.js", "file")
    with pytest.raises(ConflictError):
        store.create(project.id, file.id, "b.js", "file")

    other = ProjectStore(db_session_fixture).create(owner_id=2, name="Other")
    foreign = store.create(other.id, None, "lib", "folder")
    with pytest.raises(AppException) as exc_info:
        store.create(project.id, foreign.id, "b.js", "file")
    assert exc_info.value.status_code == 400


def test_folder_move_into_descendant_is_rejected(store, project):
    src = store.create(project.id, None, "src", "folder")
    lib = store.create(project.id, src.id, "lib", "folder")

    with pytest.raises(ConflictError):
        store.update(src.id, parent_id=lib.id)
    with pytest.raises(ConflictError):
        store.update(src.id, parent_id=src.id)


def test_update_rename_move_and_content(store, project, blob_store):
    src = store.create(project.id, None, "src", "folder")
    node = store.create(project.id, None, "a.js", "file", content="v1")

    store.update(node.id, name="b.js", parent_id=src.id)
    store.update(node.id, content="version 2")
    reloaded = store.get(node.id)

    assert (reloaded.name, reloaded.parent_id) == ("b.js", src.id)
    assert reloaded.size_in_bytes == len("version 2")
    assert blob_store.get(reloaded.content_ref) == "version 2"

    store.update(node.id, parent_id=None)
    assert store.get(node.id).parent_id is None


def test_rename_onto_existing_sibling_conflicts(store, project):
    store.create(project.id, None, "a.js", "file", content="a")
    b = store.create(project.id, None, "b.js", "file", content="b")

    with pytest.raises(ConflictError):
        store.update(b.id, name="a.js")


def test_delete_folder_cascades_children_first(store, project, blob_store):
    src = store.create(project.id, None, "src", "folder")
    a = store.create(project.id, src.id, "a.js", "file", content="a")
    lib = store.create(project.id, src.id, "lib", "folder")
    b = store.create(project.id, lib.id, "b.js", "file", content="b")
    keep = store.create(project.id, None, "keep.js", "file", content="keep")

    removed = store.delete(src.id)

    removed_ids = [n.id for n in removed]
    assert set(removed_ids) == {src.id, a.id, lib.id, b.id}
    assert removed_ids[-1] == src.id
    assert removed_ids.index(b.id) < removed_ids.index(lib.id)
    assert [n.id for n in store.list_by_project(project.id)] == [keep.id]
    for key in (a.content_ref, b.content_ref):
        with pytest.raises(NotFoundError):
            blob_store.get(key)


def test_children_requires_folder(store, project):
    src = store.create(project.id, None, "src", "folder")
    file = store.create(project.id, src.id, "a.js", "file", content="a")

    assert [n.id for n in store.children(src.id)] == [file.id]
    with pytest.raises(AppException):
        store.children(file.id)


def test_load_contents_tolerant_and_strict(store, project, blob_store):
    ok = store.create(project.id, None, "ok.js", "file", content="fine")
    broken = store.create(project.id, None, "broken.js", "file", content="gone")
    store.create(project.id, None, "src", "folder")
    blob_store.delete(broken.content_ref)
    nodes = store.list_by_project(project.id)

    assert store.load_contents(nodes, tolerant=True) == {ok.id: "fine", broken.id: ""}
    with pytest.raises(NotFoundError):
        store.load_contents(nodes)


def test_content_update_touches_project(store, project, db_session_fixture):
    node = store.create(project.id, None, "a.js", "file", content="v1")
    before = ProjectStore(db_session_fixture).get_by_id(project.id).update_time

    store.update(node.id, content="v2")

    after = ProjectStore(db_session_fixture).get_by_id(project.id).update_time
    assert after != before
