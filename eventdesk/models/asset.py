from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from eventdesk.db.base import Base
from eventdesk.models.common import UPLOAD_PATH_LENGTH, TimestampMixin


class MirroredUpload(TimestampMixin, Base):
    """A file a peer deployment stored here; referenced by the peer, not by local rows."""

    __tablename__ = "mirrored_uploads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    path: Mapped[str] = mapped_column(String(UPLOAD_PATH_LENGTH), unique=True, index=True, nullable=False)
