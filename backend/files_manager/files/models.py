"""FileNode SQLAlchemy model, node type tag and Pydantic schemas."""

import enum
from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel
from sqlalchemy import Boolean, DateTime, Enum, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from files_manager.db.session import Base

ROOT_PARENT_ID = 0


class NodeType(str, enum.Enum):
    """Kind of node. Only folders can be parents; only non-folders have content."""

    FOLDER = "folder"
    FILE = "file"
    IMAGE = "image"

    @classmethod
    def parse(cls, value: Any) -> Optional["NodeType"]:
        """Return the member for a wire tag, or None if it is not one."""
        try:
            return cls(value)
        except ValueError:
            return None


class FileNode(Base):
    """File or folder metadata. The id order is the creation order."""

    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(1024), nullable=False)
    type: Mapped[NodeType] = mapped_column(
        Enum(NodeType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    # ROOT_PARENT_ID means no parent
    parent_id: Mapped[int] = mapped_column(Integer, nullable=False, default=ROOT_PARENT_ID, index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Set iff type is not folder
    content_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def is_folder(self) -> bool:
        return self.type == NodeType.FOLDER

    def to_document(self, local_path: Optional[str] = None) -> Dict[str, Any]:
        """File doc as returned by the API."""
        doc: Dict[str, Any] = {
            "id": self.id,
            "userId": self.owner_id,
            "name": self.name,
            "type": self.type.value,
            "isPublic": self.is_public,
            "parentId": self.parent_id,
        }
        if local_path is not None:
            doc["localPath"] = local_path
        return doc


# Pydantic schemas for API
class FileCreate(BaseModel):
    """Upload body. Presence checks are done by the registry to keep its messages."""

    name: Optional[str] = None
    type: Optional[str] = None
    parentId: Optional[Union[int, str]] = None
    isPublic: bool = False
    data: Optional[str] = None
