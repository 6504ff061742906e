import click
from eth_utils import to_checksum_address

from sparkblox_deployment.constants import CONTRACT_SOURCES


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail(f"{value} is not a valid ethereum address", param, ctx)
        else:
            return value


class SparkbloxContract(click.ParamType):
    """Name of a contract this toolkit knows the verification source of."""

    name = "contract_name"

    def convert(self, value, param, ctx):
        if value not in CONTRACT_SOURCES:
            self.fail(
                f"{value} is not one of {', '.join(sorted(CONTRACT_SOURCES))}", param, ctx
            )
        return value
