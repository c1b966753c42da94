"""目录物化测试。"""

from app.packages.workspace.services.folder_materializer import FolderMaterializer


def test_root_segments_return_none(store, project):
    materializer = FolderMaterializer(store, project.id, [])

    assert materializer.ensure_folder_path([]) is None
    assert materializer.created == []


def test_missing_folders_are_created_once(store, project):
    seen = []
    materializer = FolderMaterializer(store, project.id, [], on_create=seen.append)

    c_id = materializer.ensure_folder_path(["a", "b", "c"])
    again = materializer.ensure_folder_path(["a", "b", "c"])
    b_id = materializer.ensure_folder_path(["a", "b"])

    assert c_id == again
    assert [f.name for f in materializer.created] == ["a", "b", "c"]
    assert seen == materializer.created
    assert store.get(c_id).parent_id == b_id
    folders = [n for n in store.list_by_project(project.id) if n.type == "folder"]
    assert len(folders) == 3


def test_existing_folders_are_reused(store, project):
    src = store.create(project.id, None, "src", "folder")
    lib = store.create(project.id, src.id, "lib", "folder")
    materializer = FolderMaterializer(store, project.id, store.list_by_project(project.id))

    assert materializer.ensure_folder_path(["src", "lib"]) == lib.id
    new_id = materializer.ensure_folder_path(["src", "utils"])

    assert [f.name for f in materializer.created] == ["utils"]
    assert store.get(new_id).parent_id == src.id
