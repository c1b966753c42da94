"""项目存储测试。"""

import pytest

from app.packages.workspace.core.exceptions import AppException, NotFoundError, UnauthorizedError
from app.packages.workspace.services.project_store import ProjectStore, slugify


def test_slugify_normalizes_and_suffixes():
    slug = slugify("  My React App!  ")
    assert slug.startswith("my-react-app-")
    assert len(slug.rsplit("-", 1)[1]) == 6
    assert slugify("!!!").startswith("project-")
    assert slugify("Same") != slugify("Same")


def test_create_validates_template_and_framework(db_session_fixture):
    projects = ProjectStore(db_session_fixture)
    with pytest.raises(AppException):
        projects.create(owner_id=1, name="  ")
    with pytest.raises(AppException):
        projects.create(owner_id=1, name="x", template="cobol")
    with pytest.raises(AppException):
        projects.create(owner_id=1, name="x", framework="ember")

    created = projects.create(owner_id=1, name="Vue Demo", template="vue-ts", framework="vue", auto_save=False)
    assert (created.template, created.framework, created.auto_save) == ("vue-ts", "vue", False)


def test_ownership_checks(db_session_fixture, project):
    projects = ProjectStore(db_session_fixture)

    assert projects.get_owned(project.id, 1) is project
    with pytest.raises(UnauthorizedError):
        projects.get_owned(project.id, 2)
    with pytest.raises(UnauthorizedError):
        ProjectStore.ensure_owner(project, None)
    with pytest.raises(NotFoundError):
        projects.get_by_id(9999)


def test_list_by_owner_and_touch(db_session_fixture, project):
    projects = ProjectStore(db_session_fixture)
    other = projects.create(owner_id=1, name="Second")
    projects.create(owner_id=2, name="Not mine")

    touched = projects.touch(project)

    assert touched.update_time is not None
    assert {p.id for p in projects.list_by_owner(1)} == {project.id, other.id}


def test_touch_without_commit_is_flushed_with_caller(db_session_fixture, project):
    projects = ProjectStore(db_session_fixture)
    before = project.update_time

    projects.touch(project, auto_commit=False)
    db_session_fixture.commit()

    assert projects.get_by_id(project.id).update_time != before


def test_update_changes_only_given_fields(db_session_fixture, project):
    projects = ProjectStore(db_session_fixture)

    updated = projects.update(project, description="grocery list", auto_save=False)
    assert (updated.name, updated.description, updated.auto_save) == ("Demo App", "grocery list", False)

    slug = updated.slug
    renamed = projects.update(project, name="  Renamed  ")
    assert (renamed.name, renamed.slug) == ("Renamed", slug)

    with pytest.raises(AppException):
        projects.update(project, name="   ")


def test_delete_removes_files_blobs_and_project(db_session_fixture, project, store, blob_store):
    src = store.create(project.id, None, "src", "folder")
    app_js = store.create(project.id, src.id, "App.js", "file", content="app")
    index = store.create(project.id, None, "index.js", "file", content="index")
    projects = ProjectStore(db_session_fixture)
    project_id = project.id

    assert projects.delete(project, store) == 3

    assert store.list_by_project(project_id) == []
    for key in (app_js.content_ref, index.content_ref):
        with pytest.raises(NotFoundError):
            blob_store.get(key)
    with pytest.raises(NotFoundError):
        projects.get_by_id(project_id)
