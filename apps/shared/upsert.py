"""
Atomic write utilities using ON CONFLICT

This module provides race-condition-free writes that replace the unsafe
check-then-insert pattern with the database's atomic ON CONFLICT clause.
Both PostgreSQL and SQLite (3.24+) support the syntax.

Usage:
    from apps.shared.upsert import atomic_insert_if_absent

    # Replace this unsafe pattern:
    existing = db.query(Model).filter(Model.key == value).first()
    if not existing:
        db.add(Model(key=value, data=new_data))
    db.commit()

    # With this atomic operation:
    created = atomic_insert_if_absent(db, Model, {'key': value, 'data': new_data}, ['key'])
"""

from typing import Any, Dict, List, Type

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from apps.shared.database import Base


def _insert_for(db: Session):
    """Pick the dialect-specific insert() that supports ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise ValueError(f"ON CONFLICT writes are not supported for dialect '{dialect}'")


def _check_fields(model: Type[Base], fields: List[str]) -> None:
    for field in fields:
        if not hasattr(model, field):
            raise ValueError(f"Model {model.__name__} does not have field '{field}'")


def atomic_insert_if_absent(
    db: Session,
    model: Type[Base],
    values: Dict[str, Any],
    index_elements: List[str],
) -> bool:
    """
    Insert a row unless one with the same unique key already exists.

    Uses INSERT ... ON CONFLICT DO NOTHING, so two concurrent callers with
    the same key cannot both succeed.

    Args:
        db: SQLAlchemy database session
        model: SQLAlchemy model class (e.g., KeyValueEntry)
        values: Column values for the new row
        index_elements: Columns of the unique constraint (e.g., ['namespace', 'key'])

    Returns:
        True if the row was inserted, False if the key was already taken

    Raises:
        ValueError: If model doesn't have one of the index fields
    """
    _check_fields(model, index_elements)

    stmt = _insert_for(db)(model).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=index_elements)

    result = db.execute(stmt)
    return result.rowcount == 1


def atomic_upsert(
    db: Session,
    model: Type[Base],
    values: Dict[str, Any],
    index_elements: List[str],
    auto_update_timestamp: bool = True,
    timestamp_field: str = 'updated_at'
) -> None:
    """
    Perform an atomic upsert on a table with a unique constraint.

    This uses the ON CONFLICT clause to atomically:
    1. Insert if the key in index_elements doesn't exist
    2. Update the remaining columns if it does

    Args:
        db: SQLAlchemy database session
        model: SQLAlchemy model class
        values: Column values, including the index columns
        index_elements: Columns of the unique constraint
        auto_update_timestamp: If True, automatically update timestamp_field to NOW()
        timestamp_field: Name of timestamp field to auto-update (default: 'updated_at')

    Raises:
        ValueError: If model doesn't have an index field or the timestamp field
    """
    _check_fields(model, index_elements)

    if auto_update_timestamp and not hasattr(model, timestamp_field):
        raise ValueError(f"Model {model.__name__} does not have field '{timestamp_field}'")

    stmt = _insert_for(db)(model).values(**values)

    # Use excluded.<column> to reference the value that would have been inserted
    update_dict = {
        column: getattr(stmt.excluded, column)
        for column in values
        if column not in index_elements
    }
    if auto_update_timestamp:
        update_dict[timestamp_field] = func.now()

    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_=update_dict
    )

    db.execute(stmt)
