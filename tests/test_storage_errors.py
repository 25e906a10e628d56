"""Tests for translating driver failures into connectivity errors."""
from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from backoffice.core.errors import ConnectivityError
from backoffice.db.errors import is_connectivity_error, storage_boundary


def _connect_failure() -> OperationalError:
    return OperationalError(None, None, Exception("Can't connect to MySQL server"))


def _statement_failure() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("Lock wait timeout exceeded"))


def test_failed_connect_is_a_connectivity_error() -> None:
    assert is_connectivity_error(_connect_failure()) is True
    assert is_connectivity_error(_statement_failure()) is False
    assert is_connectivity_error(ValueError("nope")) is False


def test_storage_boundary_translates_only_connectivity_failures() -> None:
    @storage_boundary
    def unreachable():
        raise _connect_failure()

    @storage_boundary
    def locked():
        raise _statement_failure()

    with pytest.raises(ConnectivityError) as excinfo:
        unreachable()
    assert excinfo.value.status_code == 503
    assert isinstance(excinfo.value.__cause__, OperationalError)

    with pytest.raises(OperationalError):
        locked()
