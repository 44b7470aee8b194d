"""Read-only contract bindings used by the client."""

from __future__ import annotations

from typing import Any

from ..base import ReadOnlyNode
from ..types import Address

HELLO_WEB3_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "hello_web3",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "pure",
        "type": "function",
    }
]


def call_hello_web3(node: ReadOnlyNode, contract_address: Address | str) -> str:
    """Call ``HelloWeb3.hello_web3()`` and return its greeting."""
    return str(node.call_contract(contract_address, HELLO_WEB3_ABI, "hello_web3"))
