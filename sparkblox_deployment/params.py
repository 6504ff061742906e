import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ape import Contract, chain, networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from ape.utils import EMPTY_BYTES32, ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from ethpm_types import MethodABI
from web3 import Web3

from sparkblox_deployment.confirm import _confirm_resolution, _continue
from sparkblox_deployment.constants import (
    CONTRACT_SOURCES,
    EIP1967_ADMIN_SLOT,
    EIP1967_IMPLEMENTATION_SLOT,
    PROXY_ADMIN_ABI,
)
from sparkblox_deployment.networks import NetworkConfig, is_local_network
from sparkblox_deployment.records import DeploymentRecord, Deployments
from sparkblox_deployment.registry import registry_from_records
from sparkblox_deployment.utils import (
    _load_yaml,
    check_etherscan_plugin,
    get_contract_container,
    validate_config,
)
from sparkblox_deployment.verify import ExplorerVerifier, verify_records

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"

ContainerLookup = Callable[[str], ContractContainer]

w3 = Web3()


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        constants: typing.Dict[str, Any] = None,
        known_contracts: typing.Iterable[str] = (),
    ):
        # contracts that are deployed before `contract_name`
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.constants = constants or dict()
        self.known_contracts = set(known_contracts)


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, deployments: Deployments, strict: bool = True) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is the special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, deployments: Deployments, strict: bool = True) -> Any:
        return deployments.deployer_address or ZERO_ADDRESS


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise ConstructorParameters.Invalid(
                f"Constant '{constant_name}' not found in deployment file."
            )

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self, deployments: Deployments, strict: bool = True) -> Any:
        return self.constant_value


class ContractName(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name == context.contract_name:
            raise ConstructorParameters.Invalid(
                f"{contract_name} cannot take its own address as a constructor parameter."
            )
        known = contract_name in context.contract_names or contract_name in context.known_contracts
        if not known:
            raise ConstructorParameters.Invalid(
                f"Contract {contract_name} must be deployed before {context.contract_name}; "
                "list it earlier in the params file or provide an address book."
            )
        self.contract_name = contract_name

    def resolve(self, deployments: Deployments, strict: bool = True) -> Any:
        """Resolves a contract address."""
        return deployments.address_of(self.contract_name, strict=strict)


def _resolve_param(value: Any, deployments: Deployments, strict: bool = True) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, deployments, strict) for v in value]

    if isinstance(value, Variable):
        return value.resolve(deployments, strict=strict)

    return value  # literally a value


def _resolve_params(
    parameters: OrderedDict, deployments: Deployments, strict: bool = True
) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value, deployments, strict)
    return resolved_parameters


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    else:
        return ContractName(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: Dict, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)
    return processed_parameters


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            contract_names.append(contract_info)
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_names.extend(list(contract_info.keys()))
        else:
            raise ConstructorParameters.Invalid("Malformed constructor parameters YAML.")

    duplicates = {name for name in contract_names if contract_names.count(name) > 1}
    if duplicates:
        raise ConstructorParameters.Invalid(
            f"Contracts listed more than once: {', '.join(sorted(duplicates))}"
        )
    return contract_names


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise ConstructorParameters.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, (name, value)) in codex:
        if abi_input.name != name:
            raise ConstructorParameters.Invalid(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input.name}'."
            )
        if not w3.is_encodable(abi_input.type, value):
            raise ConstructorParameters.Invalid(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


class ConstructorParameters:
    """Represents the constructor parameters for an ordered set of contracts."""

    class Invalid(Exception):
        """Raised when the constructor parameters are invalid"""

    def __init__(
        self,
        parameters: OrderedDict,
        deployments: Deployments,
        container_lookup: ContainerLookup = get_contract_container,
    ):
        self.parameters = parameters
        self.deployments = deployments
        self._get_container = container_lookup
        self.validate()

    @classmethod
    def from_config(
        cls,
        config: typing.Dict,
        deployments: Deployments,
        container_lookup: ContainerLookup = get_contract_container,
    ) -> "ConstructorParameters":
        """Loads the constructor parameters from a params file."""
        print("Processing contract constructor parameters...")
        contract_names = _get_contract_names(config)
        constants = config.get("constants")

        contracts_config = OrderedDict()
        for position, contract_info in enumerate(config["contracts"]):
            contract_name = contract_names[position]
            contract_data = {} if isinstance(contract_info, str) else contract_info[contract_name]
            context = VariableContext(
                contract_names=contract_names[:position],
                contract_name=contract_name,
                constants=constants,
                known_contracts=deployments.known_addresses,
            )
            contracts_config[contract_name] = cls._process_parameters(contract_data, context)

        return cls(
            parameters=contracts_config,
            deployments=deployments,
            container_lookup=container_lookup,
        )

    @classmethod
    def _process_parameters(cls, contract_data, context: VariableContext) -> OrderedDict:
        if not isinstance(contract_data, dict):
            raise cls.Invalid(
                f"Malformed constructor parameter config for {context.contract_name}."
            )
        raw_values = contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict()
        return _process_raw_values(raw_values, context)

    def validate(self) -> None:
        """
        Validates the constructor parameters of every contract against its ABI.
        Contracts that are not deployed yet stand in as the zero address.
        """
        for contract_name, parameters in self.parameters.items():
            resolved_parameters = _resolve_params(parameters, self.deployments, strict=False)
            contract_container = self._get_container(contract_name)
            _validate_constructor_abi_inputs(
                contract_name=contract_name,
                abi_inputs=contract_container.constructor.abi.inputs,
                resolved_parameters=resolved_parameters,
            )

    def resolve(self, contract_name: str) -> OrderedDict:
        """Resolves the constructor parameters for a single contract."""
        try:
            parameters = self.parameters[contract_name]
        except KeyError:
            raise ValueError(f"{contract_name} is not listed in the params file.")
        return _resolve_params(parameters, self.deployments, strict=True)


def _address_from_slot(slot_value: bytes, description: str) -> ChecksumAddress:
    if not slot_value or bytes(slot_value) == bytes(EMPTY_BYTES32):
        raise ValueError(
            f"{description} slot is empty. Are you sure this is an EIP1967-compatible proxy?"
        )
    return to_checksum_address(bytes(slot_value)[-20:])


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(
        self,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
        passphrase: typing.Optional[str] = None,
    ):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        if passphrase:
            self._account.set_autosign(autosign, passphrase=passphrase)
            if not autosign:
                # the keyfile is only unlocked by set_autosign when enabling it
                self._account.unlock(passphrase=passphrase)
        else:
            self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        return method(*args, sender=self._account)


class Deployer(Transactor):
    """
    Represents an ape account plus
    deployment parameters for a set of contracts, plus validated/annotated execution.
    """

    def __init__(
        self,
        config: typing.Dict,
        path: Path,
        verify: bool,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
        passphrase: typing.Optional[str] = None,
        network: typing.Optional[NetworkConfig] = None,
        known_addresses: typing.Optional[Dict[str, ChecksumAddress]] = None,
        verifier: typing.Optional[Any] = None,
        container_lookup: ContainerLookup = get_contract_container,
    ):
        super().__init__(account, autosign, passphrase)

        if network is not None:
            self.chain_id, live = network.chain_id, not network.is_local
        else:
            self.chain_id, live = networks.provider.network.chain_id, not is_local_network()

        self.verify = verify
        if verify and verifier is None:
            check_etherscan_plugin()
            verifier = ExplorerVerifier()
        self.verifier = verifier

        self.path = path
        self.config = config
        self.registry_filepath = validate_config(config=config, chain_id=self.chain_id, live=live)
        self.deployments = Deployments(
            deployer_address=self._account.address, known_addresses=known_addresses
        )
        self._get_container = container_lookup
        self.constructor_parameters = ConstructorParameters.from_config(
            config, deployments=self.deployments, container_lookup=container_lookup
        )

        self._print_deployment_info()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    @classmethod
    def from_yaml(cls, filepath: Path, *args, **kwargs) -> "Deployer":
        config = _load_yaml(filepath)
        return cls(config=config, path=filepath, *args, **kwargs)

    @property
    def records(self) -> List[DeploymentRecord]:
        return self.deployments.records

    def report_balance(self) -> int:
        """Prints the deployer address and its balance in ether."""
        balance = self._account.balance
        print(self._account.address, ":", Web3.from_wei(balance, "ether"))
        return balance

    def deploy(self, container: ContractContainer) -> ContractInstance:
        contract_name = container.contract_type.name
        resolved_constructor_params = self.constructor_parameters.resolve(contract_name)
        instance = self._deploy_contract(container, resolved_constructor_params)

        tx_hash = instance.receipt.txn_hash
        record = DeploymentRecord(
            name=contract_name,
            address=to_checksum_address(instance.address),
            tx_hash=tx_hash,
            constructor_args=resolved_constructor_params,
            constructor_types=[i.canonical_type for i in container.constructor.abi.inputs],
            source=CONTRACT_SOURCES.get(contract_name),
            instance=instance,
        )
        self.deployments.add(record)
        print(f"Deploying {contract_name} contract: {tx_hash} Address: {record.address}")
        return instance

    def _deploy_contract(
        self, container: ContractContainer, resolved_params: OrderedDict
    ) -> ContractInstance:
        contract_name = container.contract_type.name
        if not self._autosign:
            _confirm_resolution(resolved_params, contract_name)
        # verification happens in finalize, with the recorded constructor arguments
        return self._account.deploy(container, *resolved_params.values(), publish=False)

    def upgrade(self, container: ContractContainer, proxy_address, data=b"") -> ContractInstance:
        implementation = self.deploy(container)
        return self.upgrade_to(implementation, proxy_address, data)

    def upgrade_to(
        self, implementation: ContractInstance, proxy_address, data=b""
    ) -> ContractInstance:
        """Points an EIP1967 transparent proxy at a new implementation."""
        admin_slot = chain.provider.get_storage(address=proxy_address, slot=EIP1967_ADMIN_SLOT)
        admin_address = _address_from_slot(admin_slot, description=f"Admin of {proxy_address}")
        proxy_admin = Contract(admin_address, abi=PROXY_ADMIN_ABI)

        owner = proxy_admin.owner()
        if owner != self._account.address:
            raise ValueError(
                f"ProxyAdmin {admin_address} is owned by {owner}, not by {self._account.address}."
            )

        if data:
            self.transact(proxy_admin.upgradeAndCall, proxy_address, implementation.address, data)
        else:
            # upgradeAndCall with empty data still calls into the new implementation
            self.transact(proxy_admin.upgrade, proxy_address, implementation.address)

        contract_name = implementation.contract_type.name
        return self._get_container(contract_name).at(proxy_address)

    def finalize(self, deployments: Optional[List[ContractInstance]] = None) -> None:
        """
        Writes the deployments to the registry and optionally verifies
        them on the block explorer.
        """
        if deployments is None:
            records = self.records
        else:
            records = [self.deployments.record_at(d.address) for d in deployments]

        registry_from_records(
            records=records, chain_id=self.chain_id, output_filepath=self.registry_filepath
        )
        if self.verify:
            verify_records(records=records, verifier=self.verifier)

    def _print_deployment_info(self):
        print(
            f"Account: {self._account.address}",
            f"Config: {self.path}",
            f"Registry: {self.registry_filepath}",
            f"Verify: {self.verify}",
            f"Chain ID: {self.chain_id}",
            f"Address book: {', '.join(self.deployments.known_addresses) or '-'}",
            sep="\n",
        )


def proxy_info(proxy_address) -> typing.Tuple[ChecksumAddress, ChecksumAddress]:
    """Returns the (implementation, admin) addresses of an EIP1967 proxy."""
    provider = chain.provider
    implementation = _address_from_slot(
        provider.get_storage(address=proxy_address, slot=EIP1967_IMPLEMENTATION_SLOT),
        description=f"Implementation of {proxy_address}",
    )
    admin = _address_from_slot(
        provider.get_storage(address=proxy_address, slot=EIP1967_ADMIN_SLOT),
        description=f"Admin of {proxy_address}",
    )
    return implementation, admin
