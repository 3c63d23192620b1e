"""
Write helpers shared by the permission resolver and the rank policy engine.

`replace_link_set` performs delete-then-insert of one owner's rows of a link
table as one atomic set replace. `insert_if_absent` inserts link rows with
ON CONFLICT DO NOTHING semantics and reports how many rows were created.
"""

import logging
from typing import Any, Iterable, List, Mapping, NoReturn, Set, Type

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, OperationalError, SQLAlchemyError, TimeoutError
from sqlalchemy.orm import Session

from academy_backend.errors import ConflictError, TransientStoreError, ValidationError

logger = logging.getLogger(__name__)


def normalize_ids(ids: Iterable[Any]) -> List[str]:
    """String ids, de-duplicated, in first-seen order"""
    if ids is None:
        return []
    if isinstance(ids, (str, bytes)):
        raise ValidationError("Expected a collection of ids")
    normalized = []
    for value in ids:
        if value is None:
            raise ValidationError("Ids must not be null")
        candidate = str(value).strip()
        if not candidate:
            raise ValidationError("Ids must not be blank")
        normalized.append(candidate)
    return list(dict.fromkeys(normalized))


def _insert(db: Session, table):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise ValueError(f"Unsupported dialect for insert-if-absent: {dialect}")


def translate_store_error(error: SQLAlchemyError) -> Exception:
    """
    Map a SQLAlchemy failure onto the core taxonomy.

    Only connection and timeout problems are transient. Errors with no core
    counterpart are returned unchanged.
    """
    if isinstance(error, IntegrityError):
        return ConflictError("Conflicting assignment data")
    if isinstance(error, DataError):
        return ValidationError("Value rejected by the data store")
    if isinstance(error, (OperationalError, TimeoutError)):
        return TransientStoreError()
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return TransientStoreError()
    return error


def raise_store_error(error: SQLAlchemyError) -> NoReturn:
    translated = translate_store_error(error)
    if translated is error:
        raise error
    raise translated from error


def missing_ids(db: Session, column, ids: Iterable[str]) -> Set[str]:
    """Return the ids that have no row in `column`'s table"""
    wanted = set(ids)
    if not wanted:
        return set()
    found = db.scalars(select(column).where(column.in_(wanted))).all()
    return wanted - set(found)


def lock_owner(db: Session, owner_column, owner_id: str) -> bool:
    """
    Lock the owner row for the rest of the transaction.

    Concurrent replaces on the same owner serialize on this lock; the last one
    to commit wins. Returns False if the owner does not exist.
    """
    stmt = select(owner_column).where(owner_column == owner_id).with_for_update()
    return db.execute(stmt).first() is not None


def insert_if_absent(db: Session, model: Type[Any], rows: Iterable[Mapping[str, Any]]) -> int:
    """Insert link rows, ignoring those already present; returns the number created"""
    created = 0
    table = model.__table__
    index_elements = [column.name for column in table.primary_key.columns]

    for row in rows:
        stmt = _insert(db, table).values(**row).on_conflict_do_nothing(index_elements=index_elements)
        result = db.execute(stmt)
        created += max(result.rowcount or 0, 0)

    return created


def replace_link_set(
    db: Session,
    model: Type[Any],
    owner_field: str,
    owner_id: str,
    owner_column,
    member_field: str,
    member_ids: Iterable[Any],
    member_column,
) -> List[str]:
    """
    Atomically replace every `model` row of one owner with the given member set.

    Validation happens before any write: an unknown owner or member id rejects
    the whole batch. Delete and insert run in the caller's session and are
    committed together; on failure the transaction is rolled back.

    Returns:
        The member ids now linked to the owner.
    """
    members = normalize_ids(member_ids)
    owner_id = str(owner_id)

    try:
        if not lock_owner(db, owner_column, owner_id):
            raise ValidationError(f"Unknown {owner_field.removesuffix('_id')}: {owner_id}")

        unknown = missing_ids(db, member_column, members)
        if unknown:
            raise ValidationError(
                f"Unknown {member_field.removesuffix('_id')} ids: {', '.join(sorted(unknown))}"
            )

        owner_attr = getattr(model, owner_field)
        db.execute(delete(model).where(owner_attr == owner_id))
        insert_if_absent(db, model, ({owner_field: owner_id, member_field: member} for member in members))
        db.commit()

    except ValidationError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Replacing {model.__tablename__} rows of {owner_id} failed: {e}")
        raise_store_error(e)

    logger.info(f"Replaced {model.__tablename__} rows of {owner_id} with {len(members)} entries")
    return members
