from typing import List

from ape import chain, networks
from eth_abi import encode
from eth_utils import to_hex

from sparkblox_deployment.records import DeploymentRecord


class VerificationError(Exception):
    """Raised when a contract cannot be submitted for source verification."""


def encode_constructor_arguments(record: DeploymentRecord) -> bytes:
    """ABI-encodes the constructor arguments a contract was deployed with."""
    return encode(record.constructor_types, list(record.constructor_args.values()))


class ExplorerVerifier:
    """
    Publishes contract sources through the block explorer plugin of the connected network.

    The explorer derives constructor arguments from the creation transaction, so
    they are checked against the recorded deployment arguments before publishing.
    """

    def __init__(self, explorer=None):
        self._explorer = explorer

    @property
    def explorer(self):
        explorer = self._explorer or networks.provider.network.explorer
        if explorer is None:
            raise VerificationError(
                f"No block explorer plugin for network '{networks.provider.network.name}'."
            )
        return explorer

    def check_constructor_arguments(self, record: DeploymentRecord) -> None:
        receipt = chain.provider.get_receipt(record.tx_hash)
        creation_input = bytes(receipt.transaction.data)
        encoded_arguments = encode_constructor_arguments(record)
        if not creation_input.endswith(encoded_arguments):
            raise VerificationError(
                f"Creation transaction {record.tx_hash} of {record.name} was not sent with "
                f"constructor arguments {to_hex(encoded_arguments)}"
            )

    def verify(self, record: DeploymentRecord) -> None:
        self.check_constructor_arguments(record)
        self.explorer.publish_contract(record.address)


def verify_records(records: List[DeploymentRecord], verifier) -> None:
    """Submits each deployed contract for source verification, in deployment order."""
    for record in records:
        print(f"(i) Verifying {record.name} ({record.source}) at {record.address}...")
        if record.constructor_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in record.constructor_args.items())
            print(f"\t{pretty_args}")
        verifier.verify(record)
        print(f"{record.name} contract has verified successfully!\n")
