from collections import OrderedDict

from ape.utils import ZERO_ADDRESS


def _ask(question: str) -> None:
    """Prompts a Y/N question; answering 'n' aborts the whole run."""
    answer = input(f"{question} Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        exit(-1)


def _continue() -> None:
    _ask("Continue")


def _confirm_resolution(resolved_params: OrderedDict, contract_name: str) -> None:
    """Shows the resolved constructor arguments of a contract and asks before deploying it."""
    if not resolved_params:
        print(f"\n(i) No constructor parameters for {contract_name}")
        _ask(f"Deploy {contract_name}")
        return

    print(f"\nConstructor parameters for {contract_name}")
    for name, resolved_value in resolved_params.items():
        print(f"\t{name}={resolved_value}")
    _ask(f"Deploy {contract_name}")

    if ZERO_ADDRESS in resolved_params.values():
        _ask("Zero Address detected for deployment parameter; Continue")
