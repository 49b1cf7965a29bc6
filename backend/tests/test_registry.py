"""Tests for the file registry: validation order, visibility, paging, content reads."""

import base64
import random
from types import SimpleNamespace

import pytest

from files_manager.errors import NoContentError, NotFoundError, ValidationError
from files_manager.files.models import ROOT_PARENT_ID, NodeType
from files_manager.files.registry import FileRegistry, parse_id, parse_page

DATA = base64.b64encode(b"hello world").decode("ascii")


@pytest.fixture
def owner():
    """A user-like object with an id no other test uses."""
    return SimpleNamespace(id=random.randint(10**6, 10**9))


@pytest.fixture
def other():
    return SimpleNamespace(id=random.randint(10**9 + 1, 2 * 10**9))


def _files_in(content_store):
    root = content_store.root
    return sorted(p.name for p in root.iterdir()) if root.exists() else []


def test_parse_id_and_page():
    """Ids are non-negative integers; bad pages fall back to 0."""
    assert parse_id(5) == 5
    assert parse_id("12") == 12
    assert parse_id("abc") is None
    assert parse_id(True) is None
    assert parse_id(None) is None
    assert parse_page("3") == 3
    assert parse_page("-1") == 0
    assert parse_page("x") == 0
    assert parse_page(None) == 0


@pytest.mark.asyncio
async def test_create_folder_has_no_content(session_factory, content_store, owner):
    """Folders never carry a content reference and write nothing."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        node = await registry.create_node(owner.id, "docs", "folder")
    assert node.type == NodeType.FOLDER
    assert node.content_ref is None
    assert node.parent_id == ROOT_PARENT_ID
    assert node.is_public is False
    assert _files_in(content_store) == []


@pytest.mark.asyncio
async def test_create_file_stores_bytes_first(session_factory, content_store, owner):
    """A file node references bytes that exist in the content store."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        node = await registry.create_node(owner.id, "a.txt", "file", data=DATA, is_public=True)
    assert node.content_ref
    assert content_store.read(node.content_ref) == b"hello world"
    assert node.is_public is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,type_,data,message",
    [
        (None, "file", DATA, "Missing name"),
        ("", "folder", None, "Missing name"),
        ("x", None, DATA, "Missing type"),
        ("x", "document", DATA, "Missing type"),
        ("x", "file", None, "Missing data"),
        ("x", "image", "", "Missing data"),
        ("x", "file", "not base64!", "Missing data"),
    ],
)
async def test_create_node_validation(session_factory, content_store, owner, name, type_, data, message):
    """Missing fields fail before any content write."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        with pytest.raises(ValidationError) as exc_info:
            await registry.create_node(owner.id, name, type_, data=data)
    assert exc_info.value.message == message
    assert _files_in(content_store) == []


@pytest.mark.asyncio
async def test_parent_must_be_folder(session_factory, content_store, owner):
    """A non-folder parent is rejected and nothing new is written."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        parent = await registry.create_node(owner.id, "a.txt", "file", data=DATA)
        before = _files_in(content_store)
        with pytest.raises(ValidationError, match="Parent is not a folder"):
            await registry.create_node(owner.id, "b.txt", "file", parent_id=parent.id, data=DATA)
    assert _files_in(content_store) == before


@pytest.mark.asyncio
@pytest.mark.parametrize("parent_id", [987654321, "987654321", "not-an-id"])
async def test_parent_not_found(session_factory, content_store, owner, parent_id):
    """An unknown parent is rejected before any write."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        with pytest.raises(ValidationError, match="Parent not found"):
            await registry.create_node(owner.id, "b.txt", "file", parent_id=parent_id, data=DATA)
    assert _files_in(content_store) == []


@pytest.mark.asyncio
async def test_other_users_file_is_not_a_folder(session_factory, content_store, owner, other):
    """A non-folder parent is rejected as such, whoever owns it."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        theirs = await registry.create_node(other.id, "a.txt", "file", data=DATA)
        with pytest.raises(ValidationError) as exc_info:
            await registry.create_node(owner.id, "b", "folder", parent_id=theirs.id)
    assert exc_info.value.message == "Parent is not a folder"


@pytest.mark.asyncio
async def test_parent_exists_then_folder(session_factory, content_store, owner, other):
    """The parent check is existence then type; the folder's owner is not compared."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        folder = await registry.create_node(other.id, "theirs", "folder")
        node = await registry.create_node(owner.id, "mine", "folder", parent_id=folder.id)
    assert node.parent_id == folder.id
    assert node.owner_id == owner.id


@pytest.mark.asyncio
@pytest.mark.parametrize("root", [None, 0, "0", ""])
async def test_root_sentinel(session_factory, content_store, owner, root):
    """None, 0 and '0' all mean the root."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        node = await registry.create_node(owner.id, "f", "folder", parent_id=root)
    assert node.parent_id == ROOT_PARENT_ID


@pytest.mark.asyncio
async def test_get_node_visibility(session_factory, content_store, owner, other):
    """Private nodes are NotFound for non-owners; public ones are visible."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        private = await registry.create_node(owner.id, "p.txt", "file", data=DATA)
        public = await registry.create_node(owner.id, "q.txt", "file", data=DATA, is_public=True)
        assert (await registry.get_node(private.id, owner)).id == private.id
        assert (await registry.get_node(str(public.id), other)).id == public.id
        with pytest.raises(NotFoundError):
            await registry.get_node(private.id, other)
        with pytest.raises(NotFoundError):
            await registry.get_node(987654321, owner)
        with pytest.raises(NotFoundError):
            await registry.get_node("abc", owner)


@pytest.mark.asyncio
async def test_list_children_pages(session_factory, content_store, owner, other):
    """Pages concatenate to creation order, each node once, at most 20 per page."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        folder = await registry.create_node(owner.id, "dir", "folder")
        created = []
        for i in range(45):
            node = await registry.create_node(owner.id, f"sub{i}", "folder", parent_id=folder.id)
            created.append(node.id)
        await registry.create_node(other.id, "noise", "folder")
        pages = [await registry.list_children(owner.id, folder.id, p) for p in range(4)]
    assert [len(p) for p in pages] == [20, 20, 5, 0]
    listed = [n.id for page in pages for n in page]
    assert listed == created
    assert all(n.owner_id == owner.id and n.parent_id == folder.id for page in pages for n in page)


@pytest.mark.asyncio
async def test_list_children_root_and_owner_only(session_factory, content_store, owner, other):
    """Root listing only shows the caller's root nodes."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        mine = await registry.create_node(owner.id, "top", "folder")
        await registry.create_node(owner.id, "nested", "folder", parent_id=mine.id)
        await registry.create_node(other.id, "theirs", "folder", is_public=True)
        root = await registry.list_children(owner.id, None, 0)
        by_string = await registry.list_children(owner.id, "0", "0")
        bad_parent = await registry.list_children(owner.id, "xyz", 0)
    assert [n.id for n in root] == [mine.id]
    assert [n.id for n in by_string] == [mine.id]
    assert bad_parent == []


@pytest.mark.asyncio
async def test_set_visibility_owner_only(session_factory, content_store, owner, other):
    """Only the owner may publish; others get NotFound."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        node = await registry.create_node(owner.id, "a.txt", "file", data=DATA)
        published = await registry.set_visibility(node.id, owner, True)
        assert published.is_public is True
        with pytest.raises(NotFoundError):
            await registry.set_visibility(node.id, other, False)
        with pytest.raises(NotFoundError):
            await registry.set_visibility(987654321, owner, True)
        unpublished = await registry.set_visibility(node.id, owner, False)
    assert unpublished.is_public is False


@pytest.mark.asyncio
async def test_read_content_rules(session_factory, content_store, owner, other):
    """Owner or public may read; folders have no content; others get NotFound."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        private = await registry.create_node(owner.id, "notes.txt", "file", data=DATA)
        public = await registry.create_node(owner.id, "blob", "file", data=DATA, is_public=True)
        folder = await registry.create_node(owner.id, "dir", "folder", is_public=True)

        body, mime = await registry.read_content(private.id, owner)
        assert body == b"hello world"
        assert mime == "text/plain"
        body, mime = await registry.read_content(public.id, None)
        assert mime == "application/octet-stream"
        with pytest.raises(NotFoundError):
            await registry.read_content(private.id, other)
        with pytest.raises(NotFoundError):
            await registry.read_content(private.id, None)
        with pytest.raises(NoContentError):
            await registry.read_content(folder.id, None)


@pytest.mark.asyncio
async def test_read_content_rendition(session_factory, content_store, owner):
    """A size reads the rendition; unknown sizes and missing renditions are NotFound."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        node = await registry.create_node(owner.id, "a.png", "image", data=DATA)
        with pytest.raises(NotFoundError):
            await registry.read_content(node.id, owner, size=250)
        content_store.store_derived(node.content_ref, 250, b"thumb")
        body, mime = await registry.read_content(node.id, owner, size=250)
        assert body == b"thumb"
        assert mime == "image/png"
        with pytest.raises(NotFoundError):
            await registry.read_content(node.id, owner, size=42)


@pytest.mark.asyncio
async def test_find_owned(session_factory, content_store, owner, other):
    """find_owned re-checks the owner; mismatches are None."""
    async with session_factory() as session:
        registry = FileRegistry(session, content_store)
        node = await registry.create_node(owner.id, "a.txt", "file", data=DATA)
        assert (await registry.find_owned(node.id, owner.id)).id == node.id
        assert (await registry.find_owned(str(node.id), str(owner.id))).id == node.id
        assert await registry.find_owned(node.id, other.id) is None
        assert await registry.find_owned(987654321, owner.id) is None
        assert registry.read_original(node) == b"hello world"
