from pathlib import Path

import sparkblox_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(sparkblox_deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Networks
#

MAINNET = "mainnet"
SEPOLIA = "sepolia"
POLYGON = "polygon"
AMOY = "amoy"
BINANCE = "binance"
BINANCE_TESTNET = "binance_testnet"
LOCAL = "local"

SUPPORTED_NETWORKS = [MAINNET, SEPOLIA, POLYGON, AMOY, BINANCE, BINANCE_TESTNET, LOCAL]

#
# Contracts
#

FORWARDER = "Forwarder"
REGISTRY = "SparkbloxRegistry"
FACTORY = "SparkbloxFactory"
NFT_DROP = "NFTDrop"
NFT_COLLECTION = "NFTCollection"
DYNAMIC_COLLECTION = "DynamicCollection"

# deployed once and registered with the factory, in this order
LOGIC_CONTRACTS = [NFT_DROP, NFT_COLLECTION]

# fully qualified source names used for explorer verification
CONTRACT_SOURCES = {
    FORWARDER: "contracts/extensions/Forwarder.sol:Forwarder",
    REGISTRY: "contracts/SparkbloxRegistry.sol:SparkbloxRegistry",
    FACTORY: "contracts/SparkbloxFactory.sol:SparkbloxFactory",
    NFT_DROP: "contracts/prebuilts/NFTDrop.sol:NFTDrop",
    NFT_COLLECTION: "contracts/prebuilts/NFTCollection.sol:NFTCollection",
    DYNAMIC_COLLECTION: "contracts/prebuilts/DynamicCollection.sol:DynamicCollection",
}

#
# Access control
#

OPERATOR_ROLE_NAME = "OPERATOR_ROLE"

#
# Proxies
#

# EIP1967 slots - https://eips.ethereum.org/EIPS/eip-1967
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103
EIP1967_IMPLEMENTATION_SLOT = 0x360894A13BA1A3210667C828492DB98DCA3E2076CC3735A920A3CA505D382BBC

PROXY_ADMIN_ABI = [
    {
        "type": "function",
        "name": "upgrade",
        "stateMutability": "nonpayable",
        "inputs": [
            {
                "name": "proxy",
                "type": "address",
                "internalType": "contract ITransparentUpgradeableProxy",
            },
            {"name": "implementation", "type": "address", "internalType": "address"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "upgradeAndCall",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "proxy",
                "type": "address",
                "internalType": "contract ITransparentUpgradeableProxy",
            },
            {"name": "implementation", "type": "address", "internalType": "address"},
            {"name": "data", "type": "bytes", "internalType": "bytes"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "owner",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address", "internalType": "address"}],
    },
]
