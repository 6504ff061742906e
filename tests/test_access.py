import pytest

from sparkblox_deployment.access import (
    DEFAULT_ADMIN_ROLE,
    MissingRole,
    grant_role_if_absent,
    require_role,
    role_id,
)
from sparkblox_deployment.params import Transactor
from tests.conftest import FakeContract, address

OPERATOR_ROLE = bytes.fromhex("97667070c54ef182b0f5858b034beac1b6f3089aa2d3188bb1e8929f4fa9b929")


@pytest.fixture
def registry(ledger, deployer_account):
    return FakeContract(
        "SparkbloxRegistry",
        address(0x1001),
        ledger,
        tx_hash="0x01",
        sender=deployer_account.address,
    )


@pytest.fixture
def transactor(deployer_account):
    return Transactor(account=deployer_account, autosign=True)


def test_role_ids():
    assert role_id("OPERATOR_ROLE") == OPERATOR_ROLE
    assert DEFAULT_ADMIN_ROLE == b"\x00" * 32


def test_grant_role_when_absent(transactor, registry, ledger):
    factory = address(0x1002)
    assert grant_role_if_absent(transactor, registry, OPERATOR_ROLE, factory) is True
    assert ledger == [("grantRole", "SparkbloxRegistry", (OPERATOR_ROLE, factory))]
    assert registry.hasRole(OPERATOR_ROLE, factory)


def test_grant_role_skipped_when_present(transactor, registry, ledger):
    factory = address(0x1002)
    registry.roles.add((OPERATOR_ROLE, factory))

    assert grant_role_if_absent(transactor, registry, OPERATOR_ROLE, factory) is False
    assert ledger == []


def test_grant_role_is_idempotent(transactor, registry, ledger):
    factory = address(0x1002)
    grant_role_if_absent(transactor, registry, OPERATOR_ROLE, factory)
    grant_role_if_absent(transactor, registry, OPERATOR_ROLE, factory)
    assert len(ledger) == 1


def test_require_role(registry, deployer_account):
    with pytest.raises(MissingRole, match=deployer_account.address):
        require_role(registry, DEFAULT_ADMIN_ROLE, deployer_account.address)

    registry.roles.add((DEFAULT_ADMIN_ROLE, deployer_account.address))
    require_role(registry, DEFAULT_ADMIN_ROLE, deployer_account.address)
