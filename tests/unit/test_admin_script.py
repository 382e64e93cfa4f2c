"""
Unit tests for the admin management script
"""
import importlib.util
from pathlib import Path

import pytest

from subshare.database.models import UserRole

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "create_admin.py"


@pytest.fixture(scope="module")
def script():
    spec = importlib.util.spec_from_file_location("create_admin", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_grant_and_revoke(script, db_session, buyer):
    assert script.main(["create_admin.py", "grant", buyer.email]) == 0
    db_session.refresh(buyer)
    assert buyer.role == UserRole.ADMIN

    assert script.list_admins() == [buyer.email]

    assert script.main(["create_admin.py", "revoke", buyer.email]) == 0
    db_session.refresh(buyer)
    assert buyer.role == UserRole.USER


def test_unknown_email(script):
    assert script.main(["create_admin.py", "grant", "ghost@example.com"]) == 1


@pytest.mark.parametrize("argv", [["create_admin.py"], ["create_admin.py", "grant"], ["create_admin.py", "promote"]])
def test_usage_errors(script, argv):
    assert script.main(argv) == 1
