"""File API routes: upload, show, list, publish, content."""

import logging
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from files_manager.auth.dependencies import get_current_user, get_optional_user
from files_manager.config import get_settings
from files_manager.db.session import get_db
from files_manager.files.dependencies import get_job_queue, get_registry
from files_manager.files.models import FileCreate, NodeType
from files_manager.files.registry import FileRegistry, parse_id
from files_manager.errors import NotFoundError
from files_manager.thumbnails.pipeline import ThumbnailJob
from files_manager.thumbnails.queue import JobQueue, QueueError
from files_manager.users.models import User

router = APIRouter(prefix="/files", tags=["files"])
log = logging.getLogger(__name__)


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload(
    body: FileCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    registry: Annotated[FileRegistry, Depends(get_registry)],
    queue: Annotated[JobQueue, Depends(get_job_queue)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> Dict[str, Any]:
    """
    Create a folder, or a file/image from base64 ``data``.
    Images are queued for thumbnail generation once the node is stored.
    """
    node = await registry.create_node(
        current_user.id,
        body.name,
        body.type,
        parent_id=body.parentId,
        is_public=body.isPublic,
        data=body.data,
    )
    await session.commit()
    if node.type == NodeType.IMAGE:
        job = ThumbnailJob(file_id=node.id, user_id=current_user.id)
        try:
            await queue.enqueue(job.to_payload())
        except QueueError as e:
            # The upload stands; only its thumbnails are missing
            log.warning("Thumbnail job not queued for file id=%s: %s", node.id, e)
    return node.to_document(registry.local_path(node))


@router.get("")
async def list_files(
    current_user: Annotated[User, Depends(get_current_user)],
    registry: Annotated[FileRegistry, Depends(get_registry)],
    parentId: Annotated[Optional[str], Query()] = None,
    page: Annotated[Optional[str], Query()] = None,
) -> List[Dict[str, Any]]:
    """One page (20 entries) of the caller's nodes under ``parentId`` (root by default)."""
    nodes = await registry.list_children(current_user.id, parentId, page)
    log.info("list_files user=%s parent=%s count=%d", current_user.id, parentId, len(nodes))
    return [n.to_document(registry.local_path(n)) for n in nodes]


@router.get("/{file_id}")
async def show(
    file_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    registry: Annotated[FileRegistry, Depends(get_registry)],
) -> Dict[str, Any]:
    """A node owned by the caller or public."""
    node = await registry.get_node(file_id, current_user)
    return node.to_document()


@router.put("/{file_id}/publish")
async def publish(
    file_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    registry: Annotated[FileRegistry, Depends(get_registry)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> Dict[str, Any]:
    node = await registry.set_visibility(file_id, current_user, True)
    await session.commit()
    return node.to_document()


@router.put("/{file_id}/unpublish")
async def unpublish(
    file_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    registry: Annotated[FileRegistry, Depends(get_registry)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> Dict[str, Any]:
    node = await registry.set_visibility(file_id, current_user, False)
    await session.commit()
    return node.to_document()


@router.get("/{file_id}/data")
async def content(
    file_id: str,
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    registry: Annotated[FileRegistry, Depends(get_registry)],
    size: Annotated[Optional[str], Query()] = None,
) -> Response:
    """
    Raw content of a public node, or of the caller's own node. ``size`` selects
    a thumbnail width. Folders are 400; everything not visible is 404.
    """
    width = None
    if size is not None:
        width = parse_id(size)
        if width is None:
            raise NotFoundError()
    body, mime_type = await registry.read_content(
        file_id, current_user, width, tuple(get_settings().thumbnail_widths)
    )
    return Response(content=body, media_type=mime_type)
