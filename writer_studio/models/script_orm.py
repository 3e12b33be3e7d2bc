"""
SQLAlchemy ORM model for the 'script' table (writer submissions).
"""

from sqlalchemy import BigInteger, Column, ForeignKey, Index, Text, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class ScriptORM(Base):
    """
    A script submitted by a writer for review.

    Attributes:
        id (int): Primary key.
        writer_id (int): Owning writer.
        title (str): Script title.
        type (str): Submission type (Original, Trope, STL, Re-write).
        number (str, optional): Trope number, required for Trope submissions.
        structure (str, optional): Structure template the script follows.
        google_doc_link (str): Link to the script document.
        approval_status (str): Review status.
        created_at (datetime): Submission time.
    """
    __tablename__ = "script"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    writer_id = Column(BigInteger, ForeignKey("writer.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    type = Column(Text, nullable=True, comment="Original, Trope, STL or Re-write.")
    number = Column(Text, nullable=True, comment="Trope number, only set for Trope submissions.")
    structure = Column(Text, nullable=True)
    google_doc_link = Column(Text, nullable=False)
    approval_status = Column(Text, nullable=False, server_default="pending")
    loom_url = Column(Text, nullable=True, comment="Optional walkthrough recording.")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_script_writer_created", "writer_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ScriptORM(id={self.id}, writer_id={self.writer_id}, title='{self.title}')>"
