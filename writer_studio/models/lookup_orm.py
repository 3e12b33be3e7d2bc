"""
Reference lists offered by the submission form.
"""

from sqlalchemy import BigInteger, Column, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class TropeORM(Base):
    """
    A trope writers can base a Trope submission on.

    Attributes:
        id (int): Primary key.
        number (int): Number shown in the submission form and stored on the script.
        name (str): Trope title.
    """
    __tablename__ = "trope"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    number = Column(Integer, nullable=False, unique=True, comment="Number shown in the submission form.")
    name = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<TropeORM(number={self.number}, name='{self.name}')>"


class StructureORM(Base):
    """A story structure template a script can follow."""
    __tablename__ = "structure"

    structure_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
