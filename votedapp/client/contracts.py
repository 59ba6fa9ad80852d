"""
Contract facade.

Builds handles to the three deployed contracts (voting, CK token, token
marketplace) bound to the current node connection and, for state-changing
calls, the current signer. A facade is never cached: rebuild it whenever the
provider or signer changes.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError

from votedapp import config
from votedapp.client.errors import (
    ContractCallError,
    ContractConfigurationError,
    SignerUnavailableError,
    classify_revert,
)

logger = logging.getLogger(__name__)

ABI_DIR = Path(__file__).resolve().parent / "abi"
TX_RECEIPT_TIMEOUT = 120


@dataclass(frozen=True)
class ContractAddresses:
    voting: str = config.VOTING_CONTRACT
    token: str = config.CK_TOKEN_CONTRACT
    marketplace: str = config.TOKEN_MARKETPLACE_CONTRACT
    explorer_base_url: str = config.ETHERSCAN_BASE_URL

    def explorer_address_url(self, address: str) -> str:
        return f"{self.explorer_base_url.rstrip('/')}/address/{address}"

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_base_url.rstrip('/')}/tx/{tx_hash}"


@lru_cache(maxsize=None)
def load_abi(filename: str) -> List[Dict[str, Any]]:
    abi_path = ABI_DIR / filename
    try:
        with open(abi_path, "r", encoding="utf-8") as f:
            return json.load(f)["abi"]
    except (OSError, ValueError, KeyError) as e:
        raise ContractConfigurationError(f"Cannot load ABI from {abi_path}: {e}") from e


class ContractHandle:
    """One deployed contract, callable read-only or through the signer."""

    def __init__(self, web3: Web3, name: str, address: str, abi_file: str, signer=None):
        self.web3 = web3
        self.name = name
        self.signer = signer
        try:
            self.contract = web3.eth.contract(
                address=Web3.to_checksum_address(address),
                abi=load_abi(abi_file),
            )
        except ContractConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to load {name} contract at {address}: {e}")
            raise ContractConfigurationError(f"Invalid {name} contract configuration: {e}") from e

    @property
    def address(self) -> str:
        return self.contract.address

    def call(self, fn_name: str, *args) -> Any:
        try:
            return getattr(self.contract.functions, fn_name)(*args).call()
        except ContractLogicError as e:
            reason = getattr(e, "message", None) or str(e)
            logger.error(f"{self.name}.{fn_name} reverted: {reason}")
            raise ContractCallError(reason, kind=classify_revert(reason)) from e

    def transact(self, fn_name: str, *args, value: int = 0, gas: Optional[int] = None) -> Dict[str, Any]:
        """
        Build, sign and send a transaction, then wait for it to be mined.

        Returns:
            The transaction receipt
        """
        if self.signer is None:
            raise SignerUnavailableError(f"No signer available for {self.name}.{fn_name}")

        function = getattr(self.contract.functions, fn_name)(*args)
        logger.info(f"Sending {self.name}.{fn_name} from {self.signer.address}")
        try:
            tx_params = {
                "from": self.signer.address,
                "nonce": self.web3.eth.get_transaction_count(self.signer.address),
                "value": value,
            }
            if gas is not None:
                tx_params["gas"] = gas
            tx = function.build_transaction(tx_params)
            signed_tx = self.signer.sign_transaction(tx)
            tx_hash = self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)
            receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=TX_RECEIPT_TIMEOUT)
        except ContractLogicError as e:
            reason = getattr(e, "message", None) or str(e)
            logger.error(f"{self.name}.{fn_name} reverted: {reason}")
            raise ContractCallError(reason, kind=classify_revert(reason)) from e

        if receipt["status"] != 1:
            raise ContractCallError("Transaction was reverted by the contract")

        logger.info(f"{self.name}.{fn_name} mined in block {receipt['blockNumber']}")
        return receipt


class ContractFacade:
    def __init__(self, web3: Web3, signer=None, addresses: Optional[ContractAddresses] = None):
        self.web3 = web3
        self.signer = signer
        self.addresses = addresses or ContractAddresses()

        self.voting = ContractHandle(web3, "voting", self.addresses.voting, "VotingContract.json", signer)
        self.token = ContractHandle(web3, "token", self.addresses.token, "CKToken.json", signer)
        self.marketplace = ContractHandle(
            web3, "marketplace", self.addresses.marketplace, "TokenMarketplace.json", signer
        )

    @property
    def has_signer(self) -> bool:
        return self.signer is not None
