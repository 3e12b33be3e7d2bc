"""Declarative base shared by every Writer Studio ORM model."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
