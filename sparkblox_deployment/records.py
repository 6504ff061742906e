from collections import OrderedDict
from typing import Dict, List, NamedTuple, Optional

from ape.contracts import ContractInstance
from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address


class MissingDependency(Exception):
    """Raised when a contract address is needed before that contract exists on-chain."""


class DeploymentRecord(NamedTuple):
    """A contract deployed during this run, with the exact arguments it was deployed with."""

    name: str
    address: ChecksumAddress
    tx_hash: str
    constructor_args: OrderedDict
    constructor_types: List[str]
    source: Optional[str]
    instance: Optional[ContractInstance] = None


class Deployments:
    """
    Contract addresses available for wiring constructor arguments.

    Contracts deployed during this run take precedence over the addresses of an
    address book (contracts deployed by an earlier run on the same chain).
    """

    def __init__(
        self,
        deployer_address: Optional[ChecksumAddress] = None,
        known_addresses: Optional[Dict[str, ChecksumAddress]] = None,
    ):
        self.deployer_address = deployer_address
        self.known_addresses = dict(known_addresses or {})
        self._records = OrderedDict()

    def __contains__(self, contract_name: str) -> bool:
        return contract_name in self._records or contract_name in self.known_addresses

    @property
    def records(self) -> List[DeploymentRecord]:
        return list(self._records.values())

    def add(self, record: DeploymentRecord) -> None:
        if record.name in self._records:
            raise ValueError(f"{record.name} was already deployed in this run.")
        self._records[record.name] = record

    def get(self, contract_name: str) -> DeploymentRecord:
        return self._records[contract_name]

    def record_at(self, address: str) -> DeploymentRecord:
        address = to_checksum_address(address)
        for record in self._records.values():
            if record.address == address:
                return record
        raise ValueError(f"No contract deployed at {address} in this run.")

    def address_of(self, contract_name: str, strict: bool = True) -> ChecksumAddress:
        """
        Returns the on-chain address of a contract. When not strict (eager
        validation of a params file), a contract that is not deployed yet
        resolves to the zero address.
        """
        if contract_name in self._records:
            return self._records[contract_name].address
        if contract_name in self.known_addresses:
            return to_checksum_address(self.known_addresses[contract_name])
        if strict:
            raise MissingDependency(
                f"{contract_name} must be deployed before its address can be used."
            )
        return ZERO_ADDRESS
