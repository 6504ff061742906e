import json
import shutil
from collections import OrderedDict, defaultdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from ape.contracts import ContractInstance
from eth_typing import ChecksumAddress
from eth_utils import to_bytes, to_checksum_address, to_hex

from sparkblox_deployment.records import DeploymentRecord
from sparkblox_deployment.utils import _load_json, get_contract_container

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """A deployed contract as recorded in a registry artifact (the address book)."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: List[Dict]
    tx_hash: str
    block_number: int
    deployer: str
    constructor_args: Dict[str, Any]


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _from_jsonable(value: Any, abi_type: str) -> Any:
    """Reverses `_jsonable` for a value of the given ABI type."""
    if abi_type.endswith("]") and isinstance(value, list):
        element_type = abi_type[: abi_type.rindex("[")]
        return [_from_jsonable(v, element_type) for v in value]
    if abi_type.startswith("bytes") and isinstance(value, str):
        return to_bytes(hexstr=value)
    return value


def _get_abi(contract_instance: ContractInstance) -> List[Dict]:
    """Returns the ABI of a contract instance."""
    contract_abi = list()
    for entry in contract_instance.contract_type.abi:
        contract_abi.append(entry.model_dump(mode="json", by_alias=True))
    return contract_abi


def _get_entry(record: DeploymentRecord, chain_id: ChainId) -> RegistryEntry:
    receipt = record.instance.receipt
    return RegistryEntry(
        chain_id=chain_id,
        name=record.name,
        address=record.address,
        abi=_get_abi(record.instance),
        tx_hash=record.tx_hash,
        block_number=receipt.block_number,
        deployer=receipt.transaction.sender,
        constructor_args={k: _jsonable(v) for k, v in record.constructor_args.items()},
    )


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                abi=artifacts["abi"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                deployer=artifacts["deployer"],
                constructor_args=artifacts.get("constructor_args", {}),
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """
    Writes registry entries to a file, merging them into an existing registry.
    Entries for a chain already present in the file are diverted to a
    '.unmerged.json' sibling instead of overwriting it.
    """
    if not entries:
        print("No entries provided.")
        return filepath

    entries = sorted(entries, key=lambda entry: (str(entry.chain_id), entry.name))

    data = defaultdict(dict)
    for entry in entries:
        entry_abi = sorted(entry.abi, key=lambda d: (d["type"], d.get("name", "")))
        data[str(entry.chain_id)][entry.name] = {
            "address": entry.address,
            "abi": entry_abi,
            "tx_hash": entry.tx_hash,
            "block_number": int(entry.block_number),
            "deployer": entry.deployer,
            "constructor_args": entry.constructor_args,
        }

    filepath.parent.mkdir(parents=True, exist_ok=True)

    if filepath.exists():
        if not silent:
            print(f"Updating existing registry at {filepath}.")
        existing_data = _load_json(filepath)

        if any(chain_id in existing_data for chain_id in data):
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    "Cannot merge registries with overlapping chain IDs.\n"
                    f"Writing to {filepath} to avoid overwriting existing data."
                )
        else:
            existing_data.update(data)
            data = existing_data
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


def registry_from_records(
    records: List[DeploymentRecord], chain_id: ChainId, output_filepath: Path
) -> Path:
    """Writes the contracts deployed during a run to a registry artifact."""
    entries = [_get_entry(record, chain_id=chain_id) for record in records]
    output_filepath = write_registry(entries=entries, filepath=output_filepath)
    print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


def addresses_from_registry(
    filepath: Path, chain_id: ChainId
) -> Dict[ContractName, ChecksumAddress]:
    """Returns the contract name -> address book of a chain in a registry artifact."""
    return {
        entry.name: to_checksum_address(entry.address)
        for entry in read_registry(filepath=filepath)
        if entry.chain_id == chain_id
    }


def contracts_from_registry(filepath: Path, chain_id: ChainId) -> Dict[str, ContractInstance]:
    """Returns the contract instances of a chain in a registry artifact."""
    deployments = dict()
    for name, address in addresses_from_registry(filepath, chain_id=chain_id).items():
        deployments[name] = get_contract_container(name).at(address)
    return deployments


def records_from_registry(filepath: Path, chain_id: ChainId) -> List[DeploymentRecord]:
    """Rebuilds deployment records (for re-verification) from a registry artifact."""
    records = list()
    for entry in read_registry(filepath=filepath):
        if entry.chain_id != chain_id:
            continue
        container = get_contract_container(entry.name)
        constructor_types = [i.canonical_type for i in container.constructor.abi.inputs]
        constructor_args = OrderedDict(
            (name, _from_jsonable(value, abi_type))
            for (name, value), abi_type in zip(entry.constructor_args.items(), constructor_types)
        )
        records.append(
            DeploymentRecord(
                name=entry.name,
                address=to_checksum_address(entry.address),
                tx_hash=entry.tx_hash,
                constructor_args=constructor_args,
                constructor_types=constructor_types,
                source=None,
                instance=container.at(entry.address),
            )
        )
    return records


class ConflictResolution(Enum):
    USE_1 = 1
    USE_2 = 2


def _select_conflict_resolution(
    registry_1_entry, registry_1_filepath, registry_2_entry, registry_2_filepath
) -> ConflictResolution:
    print(
        f"\n! Conflict detected for {registry_1_entry.name} "
        f"on chain id {registry_1_entry.chain_id}:"
    )
    print(f"[1]: {registry_1_entry.name} at {registry_1_entry.address} for {registry_1_filepath}")
    print(f"[2]: {registry_2_entry.name} at {registry_2_entry.address} for {registry_2_filepath}")
    print("[A]: Abort merge")

    valid_str_answers = [
        str(ConflictResolution.USE_1.value),
        str(ConflictResolution.USE_2.value),
        "A",
    ]
    answer = None
    while answer not in valid_str_answers:
        answer = input(f"Merge resolution, {valid_str_answers}? ")

    if answer == "A":
        print("Merge Aborted!")
        exit(-1)
    return ConflictResolution(int(answer))


def merge_registries(
    registry_1_filepath: Path,
    registry_2_filepath: Path,
    output_filepath: Path,
    deprecated_contracts: Optional[List[ContractName]] = None,
    force_conflict_resolution: Optional[ConflictResolution] = None,
) -> Path:
    """
    Merges two registry artifacts, e.g. those of one-off deployments, into
    a single address book. Conflicting entries are resolved interactively
    unless a resolution is forced.
    """
    deprecated_contracts = deprecated_contracts or []

    reg1 = defaultdict(OrderedDict)
    reg2 = defaultdict(OrderedDict)
    for registry, filepath in ((reg1, registry_1_filepath), (reg2, registry_2_filepath)):
        for e in read_registry(filepath):
            if e.name not in deprecated_contracts:
                registry[e.chain_id][e.name] = e

    merged: List[RegistryEntry] = list()
    for chain_id in set(reg1) | set(reg2):
        chain_entries_1, chain_entries_2 = reg1.get(chain_id, {}), reg2.get(chain_id, {})
        for name in set(chain_entries_1) | set(chain_entries_2):
            entry_1, entry_2 = chain_entries_1.get(name), chain_entries_2.get(name)
            if entry_1 and entry_2 and entry_1 != entry_2:
                resolution = force_conflict_resolution or _select_conflict_resolution(
                    registry_1_entry=entry_1,
                    registry_2_entry=entry_2,
                    registry_1_filepath=registry_1_filepath,
                    registry_2_filepath=registry_2_filepath,
                )
                selected_entry = entry_1 if resolution == ConflictResolution.USE_1 else entry_2
            else:
                selected_entry = entry_1 or entry_2
            merged.append(selected_entry)

    # the output may be one of the inputs; both are already in memory
    if output_filepath.exists():
        output_filepath.unlink()
    write_registry(entries=merged, filepath=output_filepath)
    print(f"Merged registry output to {output_filepath}")
    return output_filepath


def normalize_registry(filepath: Path):
    """Rewrites a registry file in the standard order and format."""
    registry_entries = read_registry(filepath=filepath)
    temp_filepath = filepath.with_suffix(".temp.json")
    write_registry(entries=registry_entries, filepath=temp_filepath, silent=True)
    shutil.copy(temp_filepath, filepath)
    temp_filepath.unlink()
    print(f"Successfully normalized registry at {filepath}.")
