"""
Tests for the store helpers: error translation and insert-if-absent.
"""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    IntegrityError,
    OperationalError,
    ProgrammingError,
    TimeoutError,
)

from academy_backend.errors import ConflictError, TransientStoreError, ValidationError
from academy_backend.model.auth import UserRole
from academy_backend.permissions.store import (
    insert_if_absent,
    normalize_ids,
    raise_store_error,
    translate_store_error,
)
from academy_backend.tests.conftest import add_role, add_user


def dbapi_error(error_class, **kwargs):
    return error_class("SELECT 1", {}, Exception("driver message"), **kwargs)


class TestTranslateStoreError:

    def test_integrity_error_is_a_conflict(self):
        assert isinstance(translate_store_error(dbapi_error(IntegrityError)), ConflictError)

    def test_data_error_is_invalid_input(self):
        assert isinstance(translate_store_error(dbapi_error(DataError)), ValidationError)

    def test_operational_error_is_transient(self):
        assert isinstance(translate_store_error(dbapi_error(OperationalError)), TransientStoreError)

    def test_pool_timeout_is_transient(self):
        assert isinstance(translate_store_error(TimeoutError()), TransientStoreError)

    def test_invalidated_connection_is_transient(self):
        error = dbapi_error(DBAPIError, connection_invalidated=True)
        assert isinstance(translate_store_error(error), TransientStoreError)

    def test_programming_error_is_kept(self):
        error = dbapi_error(ProgrammingError)
        assert translate_store_error(error) is error

    def test_raise_keeps_unmapped_errors(self):
        error = dbapi_error(ProgrammingError)

        with pytest.raises(ProgrammingError) as exc:
            raise_store_error(error)
        assert exc.value is error

    def test_raise_chains_mapped_errors(self):
        error = dbapi_error(DataError)

        with pytest.raises(ValidationError) as exc:
            raise_store_error(error)
        assert exc.value.__cause__ is error


class TestInsertIfAbsent:

    def test_existing_pair_is_a_no_op(self, test_db):
        role = add_role(test_db, "instructor")
        user = add_user(test_db, "kim", [role])

        created = insert_if_absent(test_db, UserRole, [{"user_id": user.id, "role_id": role.id}])
        test_db.commit()

        assert created == 0

    def test_counts_only_new_rows(self, test_db):
        first = add_role(test_db, "instructor")
        second = add_role(test_db, "admin")
        user = add_user(test_db, "lee", [first])

        created = insert_if_absent(
            test_db,
            UserRole,
            [{"user_id": user.id, "role_id": first.id}, {"user_id": user.id, "role_id": second.id}],
        )

        assert created == 1

    def test_unsupported_dialect(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "mysql"

        with pytest.raises(ValueError):
            insert_if_absent(db, UserRole, [{"user_id": "u", "role_id": "r"}])


def test_normalize_ids_keeps_first_seen_order():
    assert normalize_ids(["b", " a ", "b", 3]) == ["b", "a", "3"]
