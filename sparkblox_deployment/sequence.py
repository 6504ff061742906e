from typing import List

from ape.contracts import ContractInstance
from eth_utils import to_hex

from sparkblox_deployment.access import grant_role_if_absent, role_id
from sparkblox_deployment.constants import (
    FACTORY,
    FORWARDER,
    LOGIC_CONTRACTS,
    OPERATOR_ROLE_NAME,
    REGISTRY,
)
from sparkblox_deployment.params import ContainerLookup, Deployer
from sparkblox_deployment.utils import get_contract_container


def deploy_sparkblox(
    deployer: Deployer, containers: ContainerLookup = get_contract_container
) -> List[ContractInstance]:
    """
    Deploys and wires the whole Sparkblox contract suite:

    Forwarder -> SparkbloxRegistry(forwarder) -> SparkbloxFactory(forwarder, registry),
    OPERATOR_ROLE on the registry for the factory, then every logic contract
    registered as a factory implementation. Finally writes the registry
    artifact and, if enabled, verifies every contract.

    Each step waits for its transaction; an exception stops the sequence
    and leaves the already-mined steps in place.
    """
    deployer.report_balance()

    forwarder = deployer.deploy(containers(FORWARDER))
    registry = deployer.deploy(containers(REGISTRY))
    factory = deployer.deploy(containers(FACTORY))

    operator_role = role_id(OPERATOR_ROLE_NAME)
    print(f"\nGranting {OPERATOR_ROLE_NAME} ({to_hex(operator_role)}) to {FACTORY} on {REGISTRY}")
    grant_role_if_absent(deployer, registry, operator_role, factory.address)

    deployments = [forwarder, registry, factory]
    for contract_name in LOGIC_CONTRACTS:
        logic = deployer.deploy(containers(contract_name))
        deployer.transact(factory.addImplementation, logic.address)
        print(f"{contract_name}(Logic) is added to {FACTORY}")
        deployments.append(logic)

    deployer.finalize(deployments=deployments)
    return deployments
