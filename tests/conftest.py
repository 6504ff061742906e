from pathlib import Path
from types import SimpleNamespace

import pytest
from eth_utils import to_checksum_address

from sparkblox_deployment.constants import CONSTRUCTOR_PARAMS_DIR
from sparkblox_deployment.networks import network_config_from_env
from sparkblox_deployment.params import Deployer
from sparkblox_deployment.utils import _load_yaml

LOCAL_NETWORK = network_config_from_env("local", environ={})

CONTRACT_ABIS = {
    "Forwarder": [],
    "SparkbloxRegistry": [("_trustedForwarder", "address")],
    "SparkbloxFactory": [("_trustedForwarder", "address"), ("_registry", "address")],
    "NFTDrop": [],
    "NFTCollection": [],
    "DynamicCollection": [],
}


# Utility functions
def address(n: int) -> str:
    return to_checksum_address(f"0x{n:040x}")


def abi_input(name, type_):
    return SimpleNamespace(name=name, type=type_, canonical_type=type_)


class FakeContainer:
    def __init__(self, name, inputs=()):
        self.contract_type = SimpleNamespace(name=name, abi=[])
        self.constructor = SimpleNamespace(
            abi=SimpleNamespace(inputs=[abi_input(n, t) for n, t in inputs])
        )

    def at(self, address_):
        return SimpleNamespace(address=address_, contract_type=self.contract_type)


class FakeMethod:
    """A state-changing contract method; every call is appended to the ledger."""

    def __init__(self, contract, name, inputs, effect=None):
        self.contract = contract
        self.name = name
        self.abis = [SimpleNamespace(name=name, inputs=[abi_input(n, t) for n, t in inputs])]
        self._effect = effect

    def __str__(self):
        return self.name

    def __call__(self, *args, sender=None):
        self.contract.ledger.append((self.name, self.contract.contract_type.name, args))
        if self._effect:
            self._effect(*args)
        return SimpleNamespace(txn_hash=f"0x{len(self.contract.ledger):064x}", sender=sender)


class FakeContract:
    """Deployed contract exposing the AccessControl and factory surface used by the runner."""

    def __init__(self, name, address_, ledger, tx_hash, sender):
        self.contract_type = SimpleNamespace(name=name, abi=[])
        self.address = address_
        self.ledger = ledger
        self.receipt = SimpleNamespace(
            txn_hash=tx_hash,
            block_number=len(ledger),
            transaction=SimpleNamespace(sender=sender),
        )
        self.roles = set()
        self.implementations = []
        self.grantRole = FakeMethod(
            self,
            "grantRole",
            [("role", "bytes32"), ("account", "address")],
            effect=lambda role, account: self.roles.add((bytes(role), account)),
        )
        self.addImplementation = FakeMethod(
            self,
            "addImplementation",
            [("_implementation", "address")],
            effect=self.implementations.append,
        )

    def hasRole(self, role, account):
        return (bytes(role), account) in self.roles


class FakeAccount:
    def __init__(self, ledger, fail_on=None):
        self.address = address(0xDE9)
        self.balance = 5 * 10**18
        self.ledger = ledger
        self.fail_on = fail_on
        self.autosign = None
        self.unlocked_with = None
        self.contracts = {}

    def set_autosign(self, enabled, passphrase=None):
        self.autosign = enabled

    def unlock(self, passphrase=None):
        self.unlocked_with = passphrase

    def deploy(self, container, *args, publish=False):
        name = container.contract_type.name
        if name == self.fail_on:
            raise RuntimeError(f"{name} deployment reverted")
        self.ledger.append(("deploy", name, args))
        n = len(self.ledger)
        contract = FakeContract(
            name, address(0x1000 + n), self.ledger, tx_hash=f"0x{n:064x}", sender=self.address
        )
        self.contracts[name] = contract
        return contract


class FakeVerifier:
    def __init__(self):
        self.verified = []

    def verify(self, record):
        self.verified.append(record)


# Fixtures
@pytest.fixture
def ledger():
    return list()


@pytest.fixture
def deployer_account(ledger):
    return FakeAccount(ledger)


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture(scope="session")
def lookup():
    containers = {name: FakeContainer(name, inputs) for name, inputs in CONTRACT_ABIS.items()}

    def _lookup(name):
        try:
            return containers[name]
        except KeyError:
            raise ValueError(f"No contract found with name '{name}'.")

    return _lookup


@pytest.fixture
def params_config(tmp_path):
    config = _load_yaml(CONSTRUCTOR_PARAMS_DIR / "local.yml")
    config["artifacts"]["dir"] = str(tmp_path)
    return config


@pytest.fixture
def make_deployer(params_config, deployer_account, verifier, lookup):
    def _make(config=None, verify=True, account=None, known_addresses=None):
        return Deployer(
            config=config or params_config,
            path=Path("local.yml"),
            verify=verify,
            account=account or deployer_account,
            autosign=True,
            network=LOCAL_NETWORK,
            known_addresses=known_addresses,
            verifier=verifier,
            container_lookup=lookup,
        )

    return _make
