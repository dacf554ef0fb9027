from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime
from sqlalchemy.dialects.mysql import DATETIME as MySQLDateTime
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    # SQLite hands timezone-aware columns back as naive values
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def utc_datetime_type():
    return DateTime(timezone=True).with_variant(MySQLDateTime(fsp=6), "mysql")


class IDModel(SQLModel):
    id: str = Field(default_factory=new_id, primary_key=True, index=True)


class CreatedAtModel(SQLModel):
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=utc_datetime_type(),
        sa_column_kwargs={"nullable": False},
    )


class TimestampModel(CreatedAtModel):
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=utc_datetime_type(),
        sa_column_kwargs={"nullable": False, "onupdate": utc_now},
    )
