"""
Capability tokens, settings loading and store error translation.
"""
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from hvac_pricing.config.settings import Settings
from hvac_pricing.engine.capabilities import Capability, Role, grant, parse_role
from hvac_pricing.engine.errors import Forbidden, InvalidInput, StoreUnavailable
from hvac_pricing.store.db import store_call


def test_employee_may_only_request():
    token = grant("e1", "employee")
    assert token.role is Role.EMPLOYEE
    assert token.has(Capability.REQUEST_PRICE)
    for capability in Capability:
        if capability is not Capability.REQUEST_PRICE:
            assert not token.has(capability)


def test_admin_holds_every_capability():
    token = grant("a1", Role.ADMIN, full_name="Ada")
    assert all(token.has(c) for c in Capability)
    token.require(Capability.MANAGE_PARAMETERS)


def test_require_raises_forbidden():
    with pytest.raises(Forbidden) as excinfo:
        grant("e1", "employee").require(Capability.APPROVE_REQUESTS)
    assert excinfo.value.code == "forbidden"


@pytest.mark.parametrize("value", ["Admin", " employee "])
def test_role_claims_are_normalized(value):
    assert parse_role(value) in (Role.ADMIN, Role.EMPLOYEE)


@pytest.mark.parametrize("value", ["root", "", None])
def test_unknown_role_rejected(value):
    with pytest.raises(InvalidInput):
        parse_role(value)


def test_principal_id_required():
    with pytest.raises(InvalidInput):
        grant("  ", "admin")


def test_settings_from_environment(tmp_path):
    settings = Settings.load(project_root=tmp_path, env={
        'HVAC_DATABASE_URL': 'postgresql://pricing@db/hvac',
        'HVAC_STORE_TIMEOUT': '2.5',
        'HVAC_CURRENCY': 'USD',
        'HVAC_LOG_LEVEL': 'debug',
        'HVAC_CORS_ORIGINS': 'https://a.example, https://b.example',
    })
    assert settings.database_url == 'postgresql://pricing@db/hvac'
    assert settings.store_timeout == 2.5
    assert settings.currency == 'USD'
    assert settings.log_level == 'DEBUG'
    assert settings.cors_origins == ('https://a.example', 'https://b.example')


def test_settings_defaults(tmp_path):
    settings = Settings.load(project_root=tmp_path, env={})
    assert settings.database_url == f"sqlite:///{tmp_path / 'hvac_pricing.db'}"
    assert settings.store_timeout == 5.0
    assert settings.catalog_file == Path(tmp_path) / 'data' / 'devices.csv'
    assert settings.cors_origins == ('*',)


def test_store_failures_become_store_unavailable():
    @store_call
    def broken():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    with pytest.raises(StoreUnavailable) as excinfo:
        broken()
    assert "database is locked" in excinfo.value.message


def test_integrity_errors_pass_through():
    @store_call
    def duplicate():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(IntegrityError):
        duplicate()
