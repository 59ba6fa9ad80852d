"""
Wallet session state.

``WalletBridge`` is the single writer of the active ``Session``. Every
transition replaces the snapshot with a new immutable one and hands it to
subscribers, so views always read a consistent session without sharing a
mutable global.

State machine::

    DISCONNECTED -> CONNECTING -> READY
    READY -> DISCONNECTED            (disconnect)
    READY -> DEGRADED                (account/chain re-derivation failed)
    DEGRADED -> READY                (next successful re-derivation)
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from web3 import Web3

from votedapp.client.backend import BackendClient
from votedapp.client.contracts import ContractAddresses, ContractFacade
from votedapp.client.errors import NoProviderError, SessionNotReadyError
from votedapp.client.networks import network_name, parse_chain_id
from votedapp.client.wallet import ACCOUNTS_CHANGED, CHAIN_CHANGED, WalletProvider
from votedapp.config import SESSION_FILE, WELCOME_MESSAGE

logger = logging.getLogger(__name__)

SELECTED_ACCOUNT_KEY = "selectedAccount"
TOKEN_KEY = "token"


class SessionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class Session:
    selected_account: Optional[str] = None
    chain_id: Optional[int] = None
    network_name: Optional[str] = None
    signer: Any = None
    provider: Optional[Web3] = None
    contracts: Optional[ContractFacade] = None
    status: SessionStatus = SessionStatus.DISCONNECTED

    @property
    def is_ready(self) -> bool:
        # A degraded session knows the address but cannot sign or read contracts
        return (
            self.status == SessionStatus.READY
            and self.signer is not None
            and self.provider is not None
            and self.contracts is not None
        )

    def require_ready(self) -> "Session":
        if not self.is_ready:
            raise SessionNotReadyError()
        return self


class SessionStore:
    """Small JSON-file key/value store for state that survives restarts."""

    def __init__(self, path: str = SESSION_FILE):
        self.path = path
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _read(self) -> Dict[str, Any]:
        """
        Read the store file safely.
        If the file is missing, empty or corrupted, start over with {}.
        """
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, FileNotFoundError):
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def clear(self) -> None:
        self._write({})


class WalletBridge:
    def __init__(
        self,
        wallet: Optional[WalletProvider],
        store: SessionStore,
        backend: BackendClient,
        addresses: Optional[ContractAddresses] = None,
    ):
        self.wallet = wallet
        self.store = store
        self.backend = backend
        self.addresses = addresses or ContractAddresses()
        self._session = Session()
        self._listeners: List[Callable[[Session], None]] = []
        self._attached = False

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token(self) -> Optional[str]:
        return self.store.get(TOKEN_KEY)

    def subscribe(self, listener: Callable[[Session], None]) -> Callable[[], None]:
        """Register a listener for new sessions; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, session: Session) -> Session:
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception as e:
                logger.error(f"Session listener failed: {e}")
        return session

    def _derive(self) -> Session:
        """
        Build a complete session from the wallet: account, chain, signer,
        authentication token and contract handles.
        """
        if self.wallet is None:
            raise NoProviderError()

        accounts = self.wallet.request("eth_requestAccounts")
        if not accounts:
            raise SessionNotReadyError("Wallet returned no accounts")
        selected_account = Web3.to_checksum_address(accounts[0])

        chain_id = parse_chain_id(self.wallet.request("eth_chainId"))
        provider = self.wallet.web3
        signer = self.wallet.get_signer(selected_account)

        signature = self.wallet.request(
            "personal_sign", [Web3.to_hex(text=WELCOME_MESSAGE), selected_account]
        )
        token = self.backend.authenticate(selected_account, signature)
        contracts = ContractFacade(provider, signer, self.addresses)
        self.store.set(TOKEN_KEY, token)

        return Session(
            selected_account=selected_account,
            chain_id=chain_id,
            network_name=network_name(chain_id),
            signer=signer,
            provider=provider,
            contracts=contracts,
            status=SessionStatus.READY,
        )

    def connect(self) -> Session:
        if self.wallet is None:
            raise NoProviderError()

        previous = self._session
        self._publish(replace(previous, status=SessionStatus.CONNECTING))
        try:
            session = self._derive()
        except Exception:
            self._publish(previous)
            raise

        self.store.set(SELECTED_ACCOUNT_KEY, session.selected_account)
        logger.info(f"Wallet connected: {session.selected_account} on {session.network_name}")
        return self._publish(session)

    def disconnect(self) -> Session:
        # Wallet permissions cannot be revoked from here; this only resets local state
        self.store.remove(SELECTED_ACCOUNT_KEY)
        self.store.remove(TOKEN_KEY)
        logger.info("Wallet disconnected")
        return self._publish(Session())

    def restore(self) -> Session:
        stored_account = self.store.get(SELECTED_ACCOUNT_KEY)
        if not stored_account or self.wallet is None:
            return self._session

        try:
            session = self._derive()
        except Exception as e:
            logger.warning(f"Error restoring web3 state: {e}")
            return self._publish(
                Session(selected_account=stored_account, status=SessionStatus.DEGRADED)
            )

        self.store.set(SELECTED_ACCOUNT_KEY, session.selected_account)
        return self._publish(session)

    def handle_account_changed(self, accounts: Optional[List[str]] = None) -> Session:
        if accounts is not None and len(accounts) == 0:
            # The wallet was locked or every account was disconnected
            return self.disconnect()

        try:
            session = self._derive()
        except Exception as e:
            logger.warning(f"Error in account change re-derivation: {e}")
            if accounts:
                selected_account = accounts[0]
            elif self.wallet is None:
                raise
            else:
                selected_account = self.wallet.request("eth_requestAccounts")[0]
            session = Session(
                selected_account=Web3.to_checksum_address(selected_account),
                status=SessionStatus.DEGRADED,
            )

        self.store.set(SELECTED_ACCOUNT_KEY, session.selected_account)
        return self._publish(session)

    def handle_chain_changed(self, chain_id_hex: Optional[str] = None) -> Session:
        try:
            session = self._derive()
        except Exception as e:
            logger.warning(f"Error in chain change re-derivation: {e}")
            if chain_id_hex is None:
                if self.wallet is None:
                    raise
                chain_id_hex = self.wallet.request("eth_chainId")
            chain_id = parse_chain_id(chain_id_hex)
            session = Session(
                selected_account=self._session.selected_account,
                chain_id=chain_id,
                network_name=network_name(chain_id),
                status=SessionStatus.DEGRADED,
            )
        return self._publish(session)

    def attach(self) -> None:
        """Start following the wallet's account and chain events."""
        if self.wallet is None or self._attached:
            return
        self.wallet.on(ACCOUNTS_CHANGED, self.handle_account_changed)
        self.wallet.on(CHAIN_CHANGED, self.handle_chain_changed)
        self._attached = True

    def detach(self) -> None:
        if self.wallet is None or not self._attached:
            return
        self.wallet.remove_listener(ACCOUNTS_CHANGED, self.handle_account_changed)
        self.wallet.remove_listener(CHAIN_CHANGED, self.handle_chain_changed)
        self._attached = False
