from votedapp.client.backend import BackendClient
from votedapp.client.contracts import ContractAddresses, ContractFacade
from votedapp.client.errors import ErrorKind, NoProviderError, VoteDappError
from votedapp.client.session import Session, SessionStatus, SessionStore, WalletBridge
from votedapp.client.wallet import LocalWalletProvider, ProviderRpcError, WalletProvider

__all__ = [
    "BackendClient",
    "ContractAddresses",
    "ContractFacade",
    "ErrorKind",
    "LocalWalletProvider",
    "NoProviderError",
    "ProviderRpcError",
    "Session",
    "SessionStatus",
    "SessionStore",
    "VoteDappError",
    "WalletBridge",
    "WalletProvider",
]
