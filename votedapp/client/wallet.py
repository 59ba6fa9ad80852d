"""
Wallet provider abstraction.

``WalletProvider`` mirrors the EIP-1193 surface an injected browser wallet
exposes: ``request(method, params)`` plus ``accountsChanged`` /
``chainChanged`` events. ``LocalWalletProvider`` is a key-holding
implementation backed by ``eth_account`` local accounts and a ``Web3`` node
connection.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Sequence

from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import Web3

from votedapp.client.errors import USER_REJECTED_CODE

logger = logging.getLogger(__name__)

ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"


class ProviderRpcError(Exception):
    """Error returned by a wallet provider request, carrying an EIP-1193 code."""

    def __init__(self, code: int, message: str):
        self.code = code
        super().__init__(message)


class WalletProvider:
    """Base class for wallet providers; subclasses implement ``request``."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = defaultdict(list)

    @property
    def web3(self) -> Web3:
        raise NotImplementedError

    def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        raise NotImplementedError

    def get_signer(self, address: str):
        raise NotImplementedError

    def on(self, event: str, handler: Callable) -> None:
        self._listeners[event].append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        try:
            self._listeners[event].remove(handler)
        except ValueError:
            pass

    def emit(self, event: str, payload: Any) -> None:
        for handler in list(self._listeners[event]):
            handler(payload)


class LocalWalletProvider(WalletProvider):
    def __init__(
        self,
        web3: Web3,
        accounts: Sequence[LocalAccount],
        chain_id: Optional[int] = None,
    ):
        super().__init__()
        if not accounts:
            raise ValueError("LocalWalletProvider needs at least one account")
        self._web3 = web3
        self._accounts = list(accounts)
        self._selected = 0
        self._chain_id = chain_id
        self.rejecting = False

    @property
    def web3(self) -> Web3:
        return self._web3

    @property
    def selected_address(self) -> str:
        return self._accounts[self._selected].address

    def _ordered_addresses(self) -> List[str]:
        # The selected account always comes first, as wallets report it
        selected = self._accounts[self._selected]
        return [selected.address] + [a.address for a in self._accounts if a is not selected]

    def _chain_id_hex(self) -> str:
        chain_id = self._chain_id if self._chain_id is not None else self._web3.eth.chain_id
        return hex(chain_id)

    def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        params = list(params or [])
        if method in ("eth_requestAccounts", "eth_accounts"):
            if self.rejecting and method == "eth_requestAccounts":
                raise ProviderRpcError(USER_REJECTED_CODE, "User rejected the request.")
            return self._ordered_addresses()
        if method == "eth_chainId":
            return self._chain_id_hex()
        if method == "personal_sign":
            if self.rejecting:
                raise ProviderRpcError(USER_REJECTED_CODE, "User denied message signature.")
            message_hex, address = params[0], params[1]
            signer = self.get_signer(address)
            signed = signer.sign_message(encode_defunct(hexstr=message_hex))
            return Web3.to_hex(signed.signature)
        raise ProviderRpcError(4200, f"Unsupported method: {method}")

    def get_signer(self, address: str) -> LocalAccount:
        for account in self._accounts:
            if account.address.lower() == address.lower():
                return account
        raise ProviderRpcError(4100, f"Account {address} is not managed by this wallet")

    def select_account(self, index: int) -> None:
        self._selected = index
        logger.info(f"Wallet switched to account {self.selected_address}")
        self.emit(ACCOUNTS_CHANGED, self._ordered_addresses())

    def switch_chain(self, chain_id: int) -> None:
        self._chain_id = chain_id
        logger.info(f"Wallet switched to chain {chain_id}")
        self.emit(CHAIN_CHANGED, hex(chain_id))
