"""SQLModel ORM tables for the change store."""

from __future__ import annotations

from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel

TIMESTAMP_LENGTH = 14


class TextEntry(SQLModel, table=True):
    __tablename__ = "texts"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    value: str = Field(max_length=255, index=True)


class LabelChange(SQLModel, table=True):
    """Labels, descriptions, aliases and sitelinks changes.

    `language` holds an interned text id: a language code, or a site code for sitelinks.
    """

    __tablename__ = "labels"  # type: ignore[bad-override]

    item: int = Field(primary_key=True, index=True)
    revision: int = Field(primary_key=True, sa_type=BigInteger)
    type: str = Field(primary_key=True, max_length=16)
    timestamp: str = Field(max_length=TIMESTAMP_LENGTH, index=True)
    change_type: str = Field(primary_key=True, max_length=16)
    language: int = Field(primary_key=True)


class StatementChange(SQLModel, table=True):
    __tablename__ = "statements"  # type: ignore[bad-override]

    item: int = Field(primary_key=True, index=True)
    revision: int = Field(primary_key=True, sa_type=BigInteger)
    property: int = Field(primary_key=True, index=True)
    timestamp: str = Field(max_length=TIMESTAMP_LENGTH, index=True)
    change_type: str = Field(primary_key=True, max_length=16)


class Creation(SQLModel, table=True):
    __tablename__ = "creations"  # type: ignore[bad-override]

    q: int = Field(primary_key=True)
    timestamp: str = Field(max_length=TIMESTAMP_LENGTH, index=True)


class Deletion(SQLModel, table=True):
    __tablename__ = "deletions"  # type: ignore[bad-override]

    q: int = Field(primary_key=True)
    timestamp: str = Field(max_length=TIMESTAMP_LENGTH, index=True)


class Redirect(SQLModel, table=True):
    __tablename__ = "redirects"  # type: ignore[bad-override]

    source: int = Field(primary_key=True)
    target: int = Field(index=True)
    timestamp: str = Field(max_length=TIMESTAMP_LENGTH, index=True)


class MetaEntry(SQLModel, table=True):
    """Key/value store for stream watermarks."""

    __tablename__ = "meta"  # type: ignore[bad-override]

    key: str = Field(primary_key=True, max_length=64)
    value: str = Field(max_length=255)
