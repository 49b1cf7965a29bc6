"""File registry: node metadata, hierarchy validation, visibility and paging.

The registry is the only writer of FileNode rows. Bytes go through the content
store first so a validation failure never leaves orphaned content, and a
stored row always points at content that exists.

Visibility rule: a node is visible to its owner, and to everyone once public.
A node the requester may not see is reported exactly like a missing one.
"""

import base64
import binascii
import logging
import mimetypes
from typing import Any, List, Optional, Tuple, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.errors import NoContentError, NotFoundError, ValidationError
from files_manager.files.models import ROOT_PARENT_ID, FileNode, NodeType
from files_manager.files.storage import LocalContentStore
from files_manager.users.models import User

log = logging.getLogger(__name__)

PAGE_SIZE = 20
DEFAULT_MIME_TYPE = "application/octet-stream"


def parse_id(value: Any) -> Optional[int]:
    """Integer id from a path/query/body value; None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_page(value: Any) -> int:
    """Page number; anything unparsable or negative is page 0."""
    page = parse_id(value)
    return page if page is not None and page >= 0 else 0


def _decode_content(data: Union[str, bytes, None]) -> Optional[bytes]:
    """Payload bytes; wire strings are base64. None when absent or undecodable."""
    if data is None:
        return None
    if isinstance(data, bytes):
        return data
    if not data:
        return None
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None


class FileRegistry:
    """Owns FileNode records; delegates payload bytes to a content store."""

    def __init__(
        self,
        session: AsyncSession,
        content_store: LocalContentStore,
        page_size: int = PAGE_SIZE,
    ):
        self._session = session
        self._content = content_store
        self._page_size = page_size

    async def _get(self, node_id: Any) -> Optional[FileNode]:
        parsed = parse_id(node_id)
        if parsed is None:
            return None
        return await self._session.get(FileNode, parsed)

    @staticmethod
    def _visible_to(node: FileNode, user: Optional[User]) -> bool:
        return node.is_public or (user is not None and node.owner_id == user.id)

    async def create_node(
        self,
        owner_id: int,
        name: Optional[str],
        type_: Optional[str],
        parent_id: Any = None,
        is_public: bool = False,
        data: Union[str, bytes, None] = None,
    ) -> FileNode:
        """
        Validate and persist a new node. Checks run in a fixed order and all of
        them run before any content is written.
        """
        if not name:
            raise ValidationError("Missing name")
        node_type = NodeType.parse(type_)
        if node_type is None:
            raise ValidationError("Missing type")
        content: Optional[bytes] = None
        if node_type != NodeType.FOLDER:
            content = _decode_content(data)
            if content is None:
                raise ValidationError("Missing data")

        parent = ROOT_PARENT_ID
        if parent_id not in (None, "", ROOT_PARENT_ID, str(ROOT_PARENT_ID)):
            parent_node = await self._get(parent_id)
            if parent_node is None:
                raise ValidationError("Parent not found")
            if not parent_node.is_folder:
                raise ValidationError("Parent is not a folder")
            parent = parent_node.id

        content_ref = self._content.store(content) if content is not None else None
        node = FileNode(
            owner_id=owner_id,
            name=name,
            type=node_type,
            parent_id=parent,
            is_public=bool(is_public),
            content_ref=content_ref,
        )
        self._session.add(node)
        await self._session.flush()
        log.info(
            "Created %s id=%s owner=%s parent=%s", node_type.value, node.id, owner_id, parent
        )
        return node

    async def get_node(self, node_id: Any, user: Optional[User]) -> FileNode:
        """Node visible to ``user``; NotFoundError otherwise."""
        node = await self._get(node_id)
        if node is None or not self._visible_to(node, user):
            raise NotFoundError()
        return node

    async def list_children(self, owner_id: int, parent_id: Any = None, page: Any = 0) -> List[FileNode]:
        """One page of the owner's nodes under ``parent_id``, in creation order."""
        parent = ROOT_PARENT_ID if parent_id in (None, "") else parse_id(parent_id)
        if parent is None:
            return []
        offset = parse_page(page) * self._page_size
        result = await self._session.execute(
            select(FileNode)
            .where(FileNode.owner_id == owner_id, FileNode.parent_id == parent)
            .order_by(FileNode.id)
            .offset(offset)
            .limit(self._page_size)
        )
        return list(result.scalars().all())

    async def set_visibility(self, node_id: Any, user: User, is_public: bool) -> FileNode:
        """Publish or unpublish. Only the owner may; anyone else gets NotFoundError."""
        node = await self._get(node_id)
        if node is None or node.owner_id != user.id:
            raise NotFoundError()
        node.is_public = is_public
        await self._session.flush()
        log.info("Node id=%s is_public=%s", node.id, is_public)
        return node

    async def read_content(
        self,
        node_id: Any,
        user: Optional[User] = None,
        size: Optional[int] = None,
        allowed_sizes: Tuple[int, ...] = (500, 250, 100),
    ) -> Tuple[bytes, str]:
        """
        Return (bytes, mime type) of a node's content, or of one of its
        renditions when ``size`` is given.
        """
        node = await self._get(node_id)
        if node is None or not self._visible_to(node, user):
            raise NotFoundError()
        if node.is_folder or not node.content_ref:
            raise NoContentError()
        if size is None:
            body = self._content.read(node.content_ref)
        elif size in allowed_sizes:
            body = self._content.read_derived(node.content_ref, size)
        else:
            raise NotFoundError()
        mime_type, _ = mimetypes.guess_type(node.name)
        return body, mime_type or DEFAULT_MIME_TYPE

    def local_path(self, node: FileNode) -> Optional[str]:
        """Content store path of a node's original, None for folders."""
        if not node.content_ref:
            return None
        return str(self._content.path_for(node.content_ref))

    async def find_owned(self, node_id: Any, owner_id: Any) -> Optional[FileNode]:
        """Node with this id if ``owner_id`` owns it, else None."""
        node = await self._get(node_id)
        owner = parse_id(owner_id)
        if node is None or owner is None or node.owner_id != owner:
            return None
        return node

    def read_original(self, node: FileNode) -> bytes:
        """Original bytes of a non-folder node."""
        if not node.content_ref:
            raise NoContentError()
        return self._content.read(node.content_ref)

    async def count(self) -> int:
        """Number of nodes of all users."""
        result = await self._session.execute(select(func.count()).select_from(FileNode))
        return result.scalar_one()
