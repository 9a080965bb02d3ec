"""SQLModel ORM tables for queue and result storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


class QueueItem(SQLModel, table=True):
    __tablename__ = "queue_items"  # type: ignore[bad-override]

    id: str = Field(primary_key=True)
    tax_id: str = Field(max_length=50, index=True)
    enqueue_time: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    status: str = Field(index=True)
    retry_count: int = 0


class ImportedFile(SQLModel, table=True):
    __tablename__ = "imported_files"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    path: str = Field(index=True)
    imported_time: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Person(SQLModel, table=True):
    __tablename__ = "people"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    tax_id: str = Field(index=True)
    check_date: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    reference_date: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True)),
    )
    is_alive: bool | None = None
    full_response: str | None = Field(default=None, sa_column=Column(Text))
    operation_id: str | None = None
    status_description: str | None = None
    death_date: str | None = None
