import json
from collections import OrderedDict

import pytest

from sparkblox_deployment import registry
from sparkblox_deployment.records import DeploymentRecord
from sparkblox_deployment.registry import (
    ConflictResolution,
    RegistryEntry,
    addresses_from_registry,
    merge_registries,
    normalize_registry,
    read_registry,
    records_from_registry,
    registry_from_records,
    write_registry,
)
from sparkblox_deployment.sequence import deploy_sparkblox
from sparkblox_deployment.verify import encode_constructor_arguments
from tests.conftest import FakeContainer, FakeContract, address

ABI = [
    {"type": "function", "name": "isTrustedForwarder", "inputs": [], "outputs": []},
    {"type": "constructor", "inputs": []},
]


def entry(chain_id, name, n, **overrides):
    fields = dict(
        chain_id=chain_id,
        name=name,
        address=address(n),
        abi=ABI,
        tx_hash=f"0x{n:064x}",
        block_number=n,
        deployer=address(0xDE9),
        constructor_args={},
    )
    fields.update(overrides)
    return RegistryEntry(**fields)


def test_write_and_read_registry(tmp_path):
    filepath = tmp_path / "registry.json"
    entries = [
        entry(1337, "SparkbloxRegistry", 2, constructor_args={"_trustedForwarder": address(1)}),
        entry(1337, "Forwarder", 1),
    ]
    assert write_registry(entries, filepath) == filepath

    data = json.loads(filepath.read_text())
    assert list(data["1337"]) == ["Forwarder", "SparkbloxRegistry"]
    assert [item["type"] for item in data["1337"]["Forwarder"]["abi"]] == [
        "constructor",
        "function",
    ]

    registry_entries = read_registry(filepath)
    assert {e.name for e in registry_entries} == {"Forwarder", "SparkbloxRegistry"}
    registry_entry = [e for e in registry_entries if e.name == "SparkbloxRegistry"][0]
    assert registry_entry.constructor_args == {"_trustedForwarder": address(1)}
    assert registry_entry.chain_id == 1337


def test_write_registry_merges_new_chain(tmp_path):
    filepath = tmp_path / "registry.json"
    write_registry([entry(1, "Forwarder", 1)], filepath)
    write_registry([entry(80002, "Forwarder", 2)], filepath)

    assert set(json.loads(filepath.read_text())) == {"1", "80002"}
    assert addresses_from_registry(filepath, chain_id=80002) == {"Forwarder": address(2)}


def test_write_registry_diverts_overlapping_chain(tmp_path):
    filepath = tmp_path / "registry.json"
    write_registry([entry(1, "Forwarder", 1)], filepath)
    output = write_registry([entry(1, "Forwarder", 2)], filepath)

    assert output == tmp_path / "registry.unmerged.json"
    assert addresses_from_registry(filepath, chain_id=1) == {"Forwarder": address(1)}
    assert addresses_from_registry(output, chain_id=1) == {"Forwarder": address(2)}


def test_merge_registries_without_conflicts(tmp_path):
    registry_1 = write_registry([entry(1, "Forwarder", 1)], tmp_path / "1.json")
    registry_2 = write_registry(
        [entry(1, "Forwarder", 1), entry(1, "SparkbloxRegistry", 2)], tmp_path / "2.json"
    )
    output = merge_registries(registry_1, registry_2, tmp_path / "merged.json")

    assert addresses_from_registry(output, chain_id=1) == {
        "Forwarder": address(1),
        "SparkbloxRegistry": address(2),
    }


@pytest.mark.parametrize(
    "resolution,expected", [(ConflictResolution.USE_1, 1), (ConflictResolution.USE_2, 2)]
)
def test_merge_registries_forced_conflict_resolution(tmp_path, resolution, expected):
    registry_1 = write_registry([entry(1, "Forwarder", 1)], tmp_path / "1.json")
    registry_2 = write_registry([entry(1, "Forwarder", 2)], tmp_path / "2.json")
    output = merge_registries(
        registry_1, registry_2, tmp_path / "merged.json", force_conflict_resolution=resolution
    )
    assert addresses_from_registry(output, chain_id=1) == {"Forwarder": address(expected)}


def test_merge_registries_drops_deprecated_contracts(tmp_path):
    registry_1 = write_registry([entry(1, "Forwarder", 1)], tmp_path / "1.json")
    registry_2 = write_registry([entry(1, "DynamicCollection", 3)], tmp_path / "2.json")
    output = merge_registries(
        registry_1,
        registry_2,
        registry_1,
        deprecated_contracts=["DynamicCollection"],
    )
    assert output == registry_1
    assert addresses_from_registry(output, chain_id=1) == {"Forwarder": address(1)}


def test_normalize_registry(tmp_path):
    filepath = tmp_path / "registry.json"
    data = {
        "1": {
            "SparkbloxRegistry": dict(
                address=address(2),
                abi=ABI,
                tx_hash="0x02",
                block_number=2,
                deployer=address(0xDE9),
            ),
            "Forwarder": dict(
                address=address(1),
                abi=ABI,
                tx_hash="0x01",
                block_number=1,
                deployer=address(0xDE9),
            ),
        }
    }
    filepath.write_text(json.dumps(data))

    normalize_registry(filepath)

    normalized = json.loads(filepath.read_text())
    assert list(normalized["1"]) == ["Forwarder", "SparkbloxRegistry"]
    assert normalized["1"]["Forwarder"]["constructor_args"] == {}
    assert not (tmp_path / "registry.temp.json").exists()


def test_records_rebuilt_with_deployment_arguments(make_deployer, lookup, monkeypatch, tmp_path):
    monkeypatch.setattr(registry, "get_contract_container", lookup)
    deployer = make_deployer(verify=False)
    deploy_sparkblox(deployer, containers=lookup)

    records = records_from_registry(tmp_path / "local.json", chain_id=1337)

    deployed = {record.name: record for record in deployer.records}
    assert {record.name for record in records} == set(deployed)
    for record in records:
        assert record.address == deployed[record.name].address
        assert record.tx_hash == deployed[record.name].tx_hash
        assert encode_constructor_arguments(record) == encode_constructor_arguments(
            deployed[record.name]
        )


def test_records_rebuilt_with_bytes_arguments(monkeypatch, tmp_path, ledger):
    inputs = [("_salt", "bytes32"), ("_data", "bytes"), ("_roles", "bytes32[]")]
    container = FakeContainer("Thing", inputs)
    monkeypatch.setattr(registry, "get_contract_container", lambda name: container)

    args = OrderedDict(_salt=b"\x01" * 32, _data=b"\xca\xfe", _roles=[bytes(32), b"\x02" * 32])
    instance = FakeContract("Thing", address(0x1001), ledger, tx_hash="0x01", sender=address(1))
    deployed = DeploymentRecord(
        name="Thing",
        address=instance.address,
        tx_hash="0x01",
        constructor_args=args,
        constructor_types=["bytes32", "bytes", "bytes32[]"],
        source=None,
        instance=instance,
    )
    filepath = registry_from_records([deployed], chain_id=1, output_filepath=tmp_path / "r.json")

    (record,) = records_from_registry(filepath, chain_id=1)
    assert record.constructor_args == args
    assert encode_constructor_arguments(record) == encode_constructor_arguments(deployed)
