import os
from typing import Mapping, NamedTuple, Optional, Tuple

from ape import accounts, networks
from ape.api import AccountAPI
from ape_accounts import import_account_from_private_key

from sparkblox_deployment.constants import (
    AMOY,
    BINANCE,
    BINANCE_TESTNET,
    LOCAL,
    MAINNET,
    POLYGON,
    SEPOLIA,
    SUPPORTED_NETWORKS,
)

ALCHEMY_KEY_ENVVAR = "ALCHEMY_KEY"
RPC_URL_ENVVAR = "RPC_URL"
PRIVATE_KEY_ENVVAR = "TEST_PRIVATE_KEY"
PASSPHRASE_ENVVAR = "SIGNER_PASSPHRASE"

# keystore alias the environment signing key is imported under
SIGNER_ALIAS = "sparkblox-deployer"

LOCAL_PROVIDER = "test"


class _NetworkDefaults(NamedTuple):
    chain_id: int
    ecosystem: str
    network: str
    alchemy_subdomain: Optional[str] = None
    public_rpc_url: Optional[str] = None


NETWORKS = {
    MAINNET: _NetworkDefaults(1, "ethereum", "mainnet", alchemy_subdomain="eth-mainnet"),
    SEPOLIA: _NetworkDefaults(11155111, "ethereum", "sepolia", alchemy_subdomain="eth-sepolia"),
    POLYGON: _NetworkDefaults(137, "polygon", "mainnet", alchemy_subdomain="polygon-mainnet"),
    AMOY: _NetworkDefaults(80002, "polygon", "amoy", alchemy_subdomain="polygon-amoy"),
    BINANCE: _NetworkDefaults(
        56, "bsc", "mainnet", public_rpc_url="https://bsc-dataseed1.binance.org/"
    ),
    BINANCE_TESTNET: _NetworkDefaults(
        97, "bsc", "testnet", public_rpc_url="https://data-seed-prebsc-1-s1.binance.org:8545/"
    ),
    LOCAL: _NetworkDefaults(1337, "ethereum", "local"),
}


class NetworkConfig(NamedTuple):
    """Network selected for a single run: chain id, ape network and RPC endpoint."""

    name: str
    chain_id: int
    ecosystem: str
    network: str
    rpc_url: Optional[str]

    @property
    def is_local(self) -> bool:
        return self.name == LOCAL

    @property
    def network_choice(self) -> str:
        """The ape network choice string, e.g. 'polygon:amoy:https://...'."""
        provider = self.rpc_url or LOCAL_PROVIDER
        return f"{self.ecosystem}:{self.network}:{provider}"


def _alchemy_url(subdomain: str, alchemy_key: str) -> str:
    return f"https://{subdomain}.g.alchemy.com/v2/{alchemy_key}"


def network_config_from_env(
    name: str, environ: Optional[Mapping[str, str]] = None
) -> NetworkConfig:
    """
    Builds the configuration of a supported network.
    RPC_URL takes precedence over the default endpoint of the network.
    """
    environ = os.environ if environ is None else environ
    if name not in NETWORKS:
        raise ValueError(
            f"Unsupported network '{name}'; expected one of {', '.join(SUPPORTED_NETWORKS)}"
        )
    defaults = NETWORKS[name]

    rpc_url = environ.get(RPC_URL_ENVVAR) or None
    if name == LOCAL:
        rpc_url = None
    elif not rpc_url and defaults.public_rpc_url:
        rpc_url = defaults.public_rpc_url
    elif not rpc_url:
        alchemy_key = environ.get(ALCHEMY_KEY_ENVVAR)
        if not alchemy_key:
            raise ValueError(f"Missing {ALCHEMY_KEY_ENVVAR}")
        rpc_url = _alchemy_url(defaults.alchemy_subdomain, alchemy_key)

    return NetworkConfig(
        name=name,
        chain_id=defaults.chain_id,
        ecosystem=defaults.ecosystem,
        network=defaults.network,
        rpc_url=rpc_url,
    )


def is_local_network() -> bool:
    """Returns True if the connected provider is a local development network."""
    return networks.provider.network.name == LOCAL


def signer_from_env(environ: Optional[Mapping[str, str]] = None) -> Tuple[AccountAPI, str]:
    """
    Returns the signing account and its keystore passphrase.
    The private key is imported into the ape keystore on first use only.
    """
    environ = os.environ if environ is None else environ
    passphrase = environ.get(PASSPHRASE_ENVVAR)
    if not passphrase:
        raise ValueError(f"{PASSPHRASE_ENVVAR} is not set.")

    if SIGNER_ALIAS in accounts.aliases:
        return accounts.load(SIGNER_ALIAS), passphrase

    private_key = environ.get(PRIVATE_KEY_ENVVAR)
    if not private_key:
        raise ValueError(f"{PRIVATE_KEY_ENVVAR} is not set.")

    account = import_account_from_private_key(SIGNER_ALIAS, passphrase, private_key)
    print(f"Account imported: {account.address}")
    return account, passphrase
