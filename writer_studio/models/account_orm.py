"""
SQLAlchemy ORM models for the 'login' and 'writer' tables.
"""

from sqlalchemy import BigInteger, Column, ForeignKey, Index, Text, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from .base import Base


class LoginORM(Base):
    """
    A dashboard account.

    Attributes:
        id (int): Primary key.
        username (str): Unique login name.
        password_hash (str): bcrypt hash of the password.
        role (str): Account role, e.g. "writer" or "admin".
    """
    __tablename__ = "login"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    username = Column(Text, nullable=False, unique=True, comment="Unique login name.")
    password_hash = Column(Text, nullable=False, comment="bcrypt hash of the account password.")
    role = Column(Text, nullable=False, server_default="writer", comment="Account role.")
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<LoginORM(id={self.id}, username='{self.username}', role='{self.role}')>"


class WriterORM(Base):
    """A writer profile, linked one-to-one to a login."""
    __tablename__ = "writer"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    login_id = Column(BigInteger, ForeignKey("login.id", ondelete="CASCADE"), nullable=False, unique=True)
    name = Column(Text, nullable=True, comment="Display name of the writer.")
    email = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_writer_login_id", "login_id"),
    )

    def __repr__(self) -> str:
        return f"<WriterORM(id={self.id}, login_id={self.login_id}, name='{self.name}')>"
