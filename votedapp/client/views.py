"""
View operations: what the pages of the voting app read and submit.

Every function takes the current ``Session`` snapshot. Reads go through the
session's contract handles; writes are signed by the session's signer.
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel
from web3 import Web3

from votedapp.client.backend import BackendClient
from votedapp.client.contracts import ContractFacade
from votedapp.client.errors import ErrorKind, ImageUploadError, VoteDappError
from votedapp.client.polling import BlockWatcher, Poller
from votedapp.client.session import Session
from votedapp.config import AUTHORIZED_ADDRESS, MIN_TOKENS_TO_VOTE, POLL_INTERVALS
from votedapp.models.image_model import ImageRole

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

VOTING_NOT_STARTED = "Not Started"
VOTING_IN_PROGRESS = "In Progress"
VOTING_ENDED = "Ended"

BUY_TOKEN_GAS_LIMIT = 500000


class Gender(IntEnum):
    NOT_SPECIFIED = 0
    MALE = 1
    FEMALE = 2
    OTHER = 3


def gender_from_label(label: Union[str, int, Gender, None]) -> Gender:
    if isinstance(label, int):
        return Gender(label)
    if not label:
        return Gender.NOT_SPECIFIED
    return {"male": Gender.MALE, "female": Gender.FEMALE, "other": Gender.OTHER}.get(
        label.strip().lower(), Gender.NOT_SPECIFIED
    )


class Candidate(BaseModel):
    candidate_id: int
    name: str
    party: str
    age: int
    gender: int
    address: str
    votes: int = 0
    image_url: Optional[str] = None


class Voter(BaseModel):
    voter_id: int
    name: str
    age: int
    gender: int
    vote_candidate_id: int
    address: str
    image_url: Optional[str] = None


class Winner(BaseModel):
    id: int
    name: str
    address: str
    votes: int


class VotingPeriod(BaseModel):
    start_time: int
    end_time: int
    status: str
    time_remaining: int


class RegistrationResult(BaseModel):
    tx_hash: str
    image_url: Optional[str] = None
    image_error: Optional[ErrorKind] = None


def _contracts(session: Session) -> ContractFacade:
    return session.require_ready().contracts


def _tx_hash(receipt: Dict[str, Any]) -> str:
    return Web3.to_hex(receipt["transactionHash"])


def _to_wei(amount: Union[str, int, float, Decimal]) -> int:
    """Whole tokens to wei; rejects non-numbers, non-positive amounts and more than 18 decimals."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Please enter a valid amount: {amount!r}")
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Please enter a valid amount: {amount!r}")
    wei = value.scaleb(18)
    if wei != wei.to_integral_value():
        raise ValueError(f"Amount has more than 18 decimals: {amount!r}")
    return int(wei)


def _candidate(row) -> Candidate:
    name, party, age, gender, candidate_id, address, votes = row
    return Candidate(
        candidate_id=candidate_id,
        name=name,
        party=party,
        age=age,
        gender=gender,
        address=address,
        votes=votes,
    )


def _voter(row) -> Voter:
    name, age, voter_id, gender, vote_candidate_id, address = row
    return Voter(
        voter_id=voter_id,
        name=name,
        age=age,
        gender=gender,
        vote_candidate_id=vote_candidate_id,
        address=address,
    )


# --- Reads ---

def candidate_list(session: Session, backend: Optional[BackendClient] = None) -> List[Candidate]:
    """All registered candidates; with ``backend`` each gets its profile image URL."""
    candidates = [_candidate(row) for row in _contracts(session).voting.call("getCandidateList")]
    if backend is not None:
        for candidate in candidates:
            candidate.image_url = backend.get_image_url(ImageRole.candidate, candidate.address)
    return candidates


def voter_list(session: Session) -> List[Voter]:
    return [_voter(row) for row in _contracts(session).voting.call("getVoterList")]


def voter_profile(session: Session, address: Optional[str] = None) -> Optional[Voter]:
    address = (address or session.selected_account or "").lower()
    for voter in voter_list(session):
        if voter.address.lower() == address:
            return voter
    return None


def candidate_profile(session: Session, address: Optional[str] = None) -> Optional[Candidate]:
    address = (address or session.selected_account or "").lower()
    for candidate in candidate_list(session):
        if candidate.address.lower() == address:
            return candidate
    return None


def verify_voter(
    session: Session, voter_id: int, backend: Optional[BackendClient] = None
) -> Optional[Voter]:
    """Look a voter up by id; None when the id is not registered."""
    voter = _voter(_contracts(session).voting.call("voterDetails", int(voter_id)))
    if voter.address == ZERO_ADDRESS or not voter.name:
        logger.info(f"Voter verification failed for id {voter_id}")
        return None
    if backend is not None:
        voter.image_url = backend.get_image_url(ImageRole.voter, voter.address)
    return voter


def election_results(session: Session) -> List[Candidate]:
    voting = _contracts(session).voting
    count = voting.call("candidateCount")
    results = [_candidate(voting.call("getCandidate", i)) for i in range(1, count + 1)]
    results.sort(key=lambda c: c.votes, reverse=True)
    return results


def winner(session: Session) -> Optional[Winner]:
    """The announced winner, or None while results are unpublished."""
    voting = _contracts(session).voting
    winner_id = voting.call("winnerId")
    if winner_id == 0:
        return None
    return Winner(
        id=winner_id,
        name=voting.call("winnerName"),
        address=voting.call("winnerAddress"),
        votes=voting.call("winnerVotes"),
    )


def voting_status(session: Session) -> int:
    return _contracts(session).voting.call("getVotingStatus")


def voting_period(session: Session, now: Optional[float] = None) -> VotingPeriod:
    voting = _contracts(session).voting
    start_time = voting.call("startTime")
    end_time = voting.call("endTime")
    now = int(now if now is not None else time.time())

    if now < start_time:
        status, remaining = VOTING_NOT_STARTED, start_time - now
    elif now < end_time:
        status, remaining = VOTING_IN_PROGRESS, end_time - now
    else:
        status, remaining = VOTING_ENDED, 0
    return VotingPeriod(start_time=start_time, end_time=end_time, status=status, time_remaining=remaining)


def token_balance(session: Session, account: Optional[str] = None) -> Decimal:
    """CK token balance in whole tokens."""
    account = account or session.selected_account
    balance_wei = _contracts(session).token.call("balanceOf", Web3.to_checksum_address(account))
    return Web3.from_wei(balance_wei, "ether")


def is_vote_eligible(session: Session) -> bool:
    return token_balance(session) >= MIN_TOKENS_TO_VOTE


def token_price(session: Session) -> Decimal:
    return Web3.from_wei(_contracts(session).marketplace.call("tokenPrice"), "ether")


# --- Registration and voting ---

def _upload_optional_image(
    role: ImageRole,
    image: Optional[bytes],
    backend: Optional[BackendClient],
    token: Optional[str],
) -> RegistrationResult:
    # Image failures never block registration
    if image is None:
        return RegistrationResult(tx_hash="")
    if backend is None or not token:
        logger.warning(f"Skipping {role.value} image upload: not authenticated with the backend")
        return RegistrationResult(tx_hash="", image_error=ErrorKind.IMAGE_UPLOAD_FAILED)
    try:
        return RegistrationResult(tx_hash="", image_url=backend.upload_image(role, image, token))
    except ImageUploadError as e:
        logger.warning(f"{role.value} image upload failed, registering without image: {e}")
        return RegistrationResult(tx_hash="", image_error=e.kind)


def register_voter(
    session: Session,
    name: str,
    age: int,
    gender: Union[str, int, Gender],
    image: Optional[bytes] = None,
    backend: Optional[BackendClient] = None,
    token: Optional[str] = None,
) -> RegistrationResult:
    contracts = _contracts(session)
    result = _upload_optional_image(ImageRole.voter, image, backend, token)
    receipt = contracts.voting.transact("registerVoter", name, int(age), int(gender_from_label(gender)))
    result.tx_hash = _tx_hash(receipt)
    logger.info(f"Voter registered: {session.selected_account}")
    return result


def register_candidate(
    session: Session,
    name: str,
    party: str,
    age: int,
    gender: Union[str, int, Gender],
    image: Optional[bytes] = None,
    backend: Optional[BackendClient] = None,
    token: Optional[str] = None,
) -> RegistrationResult:
    contracts = _contracts(session)
    result = _upload_optional_image(ImageRole.candidate, image, backend, token)
    receipt = contracts.voting.transact(
        "registerCandidate", name, party, int(age), int(gender_from_label(gender))
    )
    result.tx_hash = _tx_hash(receipt)
    logger.info(f"Candidate registered: {session.selected_account}")
    return result


def cast_vote(session: Session, voter_id: int, candidate_id: int, now: Optional[float] = None) -> str:
    """Vote during the voting period; requires the minimum CK token balance."""
    contracts = _contracts(session)
    if voting_period(session, now).status != VOTING_IN_PROGRESS:
        raise VoteDappError(kind=ErrorKind.VOTING_NOT_ACTIVE)
    if not is_vote_eligible(session):
        raise VoteDappError(kind=ErrorKind.INSUFFICIENT_TOKENS)

    receipt = contracts.voting.transact("vote", int(voter_id), int(candidate_id))
    return _tx_hash(receipt)


# --- Token marketplace ---

def buy_tokens(session: Session, amount: Union[str, int, float, Decimal]) -> str:
    value_wei = _to_wei(amount)
    receipt = _contracts(session).marketplace.transact(
        "buyCkToken", value_wei, value=value_wei, gas=BUY_TOKEN_GAS_LIMIT
    )
    return _tx_hash(receipt)


def approve_tokens(session: Session, amount: Union[str, int, float, Decimal]) -> str:
    """Allow the marketplace to pull ``amount`` tokens; needed before selling."""
    contracts = _contracts(session)
    receipt = contracts.token.transact("approve", contracts.marketplace.address, _to_wei(amount))
    return _tx_hash(receipt)


def sell_tokens(session: Session, amount: Union[str, int, float, Decimal]) -> str:
    receipt = _contracts(session).marketplace.transact("sellCkToken", _to_wei(amount))
    return _tx_hash(receipt)


# --- Election commission ---

def is_commissioner(address: Optional[str]) -> bool:
    return bool(address) and address.lower() == AUTHORIZED_ADDRESS.lower()


def _commission_contracts(session: Session) -> ContractFacade:
    contracts = _contracts(session)
    if not is_commissioner(session.selected_account):
        raise VoteDappError(kind=ErrorKind.NOT_AUTHORIZED)
    return contracts


def set_voting_period(session: Session, start_delay: int, duration: int) -> str:
    """Open voting ``start_delay`` seconds from now for ``duration`` seconds."""
    receipt = _commission_contracts(session).voting.transact(
        "setVotingPeriod", int(start_delay), int(duration)
    )
    return _tx_hash(receipt)


def announce_result(session: Session) -> str:
    return _tx_hash(_commission_contracts(session).voting.transact("announceVotingResult"))


def emergency_stop(session: Session) -> str:
    return _tx_hash(_commission_contracts(session).voting.transact("StopVoting"))


def reset_election(session: Session) -> str:
    return _tx_hash(_commission_contracts(session).voting.transact("resetElection"))


def admin_list(session: Session) -> List[str]:
    return list(_commission_contracts(session).voting.call("getAdmins"))


def add_admin(session: Session, address: str) -> str:
    contracts = _commission_contracts(session)
    receipt = contracts.voting.transact("addAdmin", Web3.to_checksum_address(address))
    return _tx_hash(receipt)


def remove_admin(session: Session, address: str) -> str:
    contracts = _commission_contracts(session)
    receipt = contracts.voting.transact("removeAdmin", Web3.to_checksum_address(address))
    return _tx_hash(receipt)


def image_database_stats(session: Session, backend: BackendClient, token: str) -> Dict[str, int]:
    _commission_contracts(session)
    return backend.database_stats(token)


def reset_image_database(session: Session, backend: BackendClient, token: str) -> Dict[str, int]:
    """Delete every stored voter and candidate image record. Irreversible."""
    _commission_contracts(session)
    deleted = backend.reset_database(token)
    logger.info(f"Image database reset by {session.selected_account}: {deleted}")
    return deleted


# --- Live views ---

def poll_view(
    session: Session,
    name: str,
    on_result: Callable[[Any], None],
    on_error: Optional[Callable[[Exception], None]] = None,
    watch_blocks: bool = True,
) -> Poller:
    """
    Poller refreshing one of the live views (see ``POLL_INTERVALS``).
    Call ``start()`` inside a running event loop and ``await stop()`` on teardown.
    """
    readers = {
        "token_balance": token_balance,
        "token_price": token_price,
        "winner": winner,
        "results": election_results,
        "vote_eligibility": is_vote_eligible,
    }
    if name not in readers:
        raise ValueError(f"Unknown live view: {name}")

    session.require_ready()
    watcher = BlockWatcher(session.provider) if watch_blocks else None
    return Poller(
        lambda: readers[name](session),
        POLL_INTERVALS[name],
        on_result,
        on_error=on_error,
        watcher=watcher,
    )
