from ape.contracts import ContractInstance
from eth_utils import to_hex
from web3 import Web3

from sparkblox_deployment.params import Transactor

DEFAULT_ADMIN_ROLE = bytes(32)


class MissingRole(Exception):
    """Raised when an account lacks a role it needs on an access-controlled contract."""


def role_id(role_name: str) -> bytes:
    """Returns the bytes32 identifier of an AccessControl role, i.e. keccak256(role_name)."""
    return bytes(Web3.solidity_keccak(["string"], [role_name]))


def grant_role_if_absent(
    transactor: Transactor, contract: ContractInstance, role: bytes, grantee: str
) -> bool:
    """
    Grants `role` on `contract` to `grantee` unless it already holds it.
    Returns True if a grant transaction was sent.
    """
    contract_name = contract.contract_type.name
    if contract.hasRole(role, grantee):
        print(f"\n(i) {grantee} already has role {to_hex(role)} on {contract_name}; skipping")
        return False

    transactor.transact(contract.grantRole, role, grantee)
    print(
        f"Granted role {to_hex(role)} on {contract_name}\n",
        f"Grantee: {grantee}",
    )
    return True


def require_role(contract: ContractInstance, role: bytes, account: str) -> None:
    if not contract.hasRole(role, account):
        raise MissingRole(
            f"{account} does not have role {to_hex(role)} on {contract.contract_type.name}"
        )
