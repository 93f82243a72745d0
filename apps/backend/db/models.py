from sqlalchemy import Column, Integer, String, Text, DateTime, LargeBinary, Enum
import sqlalchemy as sa
from sqlalchemy.orm import deferred

from jobtracker.models.base import Base
from jobtracker.storage.locations import StorageKind


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    original_name = Column(String(255), nullable=False)
    stored_name = Column(String(512), nullable=False)
    storage_kind = Column(
        Enum(StorageKind, name="resume_storage_kind", values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
    )
    external_url = Column(String(2048), nullable=True)
    external_object_id = Column(String(512), nullable=True)
    # only loaded when content is actually served
    blob_content = deferred(Column(LargeBinary, nullable=True))
    legacy_path = Column(String(1024), nullable=True)
    size_bytes = Column(Integer, nullable=False)
    mime_type = Column(String(255), nullable=False)
    download_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Resume id={self.id} owner={self.owner_id} kind={self.storage_kind}>"
