from decimal import Decimal

import pytest
from eth_account import Account

from votedapp.client import views
from votedapp.client.errors import ErrorKind, ImageUploadError, SessionNotReadyError, VoteDappError
from votedapp.client.polling import Poller
from votedapp.client.session import Session, SessionStatus
from votedapp.config import AUTHORIZED_ADDRESS
from votedapp.models.image_model import ImageRole

ETHER = 10 ** 18
TX_HASH = b"\xab" * 32


class FakeHandle:
    """Stands in for a ContractHandle: canned reads, recorded writes."""

    def __init__(self, address="0x0000000000000000000000000000000000000001", **reads):
        self.address = address
        self.reads = reads
        self.sent = []

    def call(self, fn_name, *args):
        value = self.reads[fn_name]
        return value(*args) if callable(value) else value

    def transact(self, fn_name, *args, value=0, gas=None):
        self.sent.append((fn_name, args, value, gas))
        return {"transactionHash": TX_HASH, "status": 1}


class FakeFacade:
    def __init__(self, voting=None, token=None, marketplace=None):
        self.voting = voting or FakeHandle()
        self.token = token or FakeHandle(balanceOf=lambda account: 2 * ETHER)
        self.marketplace = marketplace or FakeHandle(
            address="0x00000000000000000000000000000000000000Aa", tokenPrice=ETHER // 100
        )


class FakeBackend:
    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = []

    def upload_image(self, role, content, token):
        if self.fail:
            raise ImageUploadError("relay returned 502")
        self.uploads.append((role, content, token))
        return "https://gateway.test/ipfs/QmImage"

    def get_image_url(self, role, address):
        return f"https://gateway.test/ipfs/{role.value}-{address[-4:]}"


def ready_session(contracts, account=None):
    return Session(
        selected_account=account or Account.create().address,
        chain_id=17000,
        network_name="Ethereum Holesky Testnet",
        signer=object(),
        provider=object(),
        contracts=contracts,
        status=SessionStatus.READY,
    )


CANDIDATES = [
    ("Asha", "Blue", 40, 2, 1, "0x00000000000000000000000000000000000000c1", 3),
    ("Ravi", "Green", 52, 1, 2, "0x00000000000000000000000000000000000000c2", 7),
]


def test_reads_require_ready_session():
    degraded = Session(selected_account=Account.create().address, status=SessionStatus.DEGRADED)
    with pytest.raises(SessionNotReadyError):
        views.candidate_list(degraded)


def test_candidate_list_with_images():
    session = ready_session(FakeFacade(voting=FakeHandle(getCandidateList=CANDIDATES)))

    candidates = views.candidate_list(session, backend=FakeBackend())

    assert [c.name for c in candidates] == ["Asha", "Ravi"]
    assert candidates[1].votes == 7
    assert candidates[0].image_url.endswith("candidate-00c1")


def test_election_results_sorted_by_votes():
    voting = FakeHandle(candidateCount=2, getCandidate=lambda i: CANDIDATES[i - 1])

    results = views.election_results(ready_session(FakeFacade(voting=voting)))

    assert [c.candidate_id for c in results] == [2, 1]


def test_winner_is_none_until_announced():
    voting = FakeHandle(winnerId=0)
    assert views.winner(ready_session(FakeFacade(voting=voting))) is None


def test_winner_after_announcement():
    voting = FakeHandle(winnerId=2, winnerName="Ravi", winnerAddress=CANDIDATES[1][5], winnerVotes=7)

    winner = views.winner(ready_session(FakeFacade(voting=voting)))

    assert (winner.id, winner.name, winner.votes) == (2, "Ravi", 7)


def test_verify_voter_unknown_id():
    voting = FakeHandle(voterDetails=lambda voter_id: ("", 0, 0, 0, 0, views.ZERO_ADDRESS))
    assert views.verify_voter(ready_session(FakeFacade(voting=voting)), 99) is None


def test_voter_profile_matches_selected_account():
    account = Account.create().address
    voting = FakeHandle(getVoterList=[("Meera", 30, 5, 2, 0, account)])

    voter = views.voter_profile(ready_session(FakeFacade(voting=voting), account=account))

    assert voter.voter_id == 5


@pytest.mark.parametrize(
    "now, status, remaining",
    [(50, views.VOTING_NOT_STARTED, 50), (150, views.VOTING_IN_PROGRESS, 50), (250, views.VOTING_ENDED, 0)],
)
def test_voting_period(now, status, remaining):
    voting = FakeHandle(startTime=100, endTime=200)

    period = views.voting_period(ready_session(FakeFacade(voting=voting)), now=now)

    assert (period.status, period.time_remaining) == (status, remaining)


def test_token_balance_and_price_in_whole_tokens():
    session = ready_session(FakeFacade())

    assert views.token_balance(session) == Decimal(2)
    assert views.token_price(session) == Decimal("0.01")
    assert views.is_vote_eligible(session)


def test_cast_vote_outside_period():
    voting = FakeHandle(startTime=100, endTime=200)

    with pytest.raises(VoteDappError) as exc:
        views.cast_vote(ready_session(FakeFacade(voting=voting)), 1, 2, now=300)

    assert exc.value.kind == ErrorKind.VOTING_NOT_ACTIVE
    assert voting.sent == []


def test_cast_vote_without_tokens():
    voting = FakeHandle(startTime=100, endTime=200)
    token = FakeHandle(balanceOf=lambda account: ETHER // 2)

    with pytest.raises(VoteDappError) as exc:
        views.cast_vote(ready_session(FakeFacade(voting=voting, token=token)), 1, 2, now=150)

    assert exc.value.kind == ErrorKind.INSUFFICIENT_TOKENS
    assert voting.sent == []


def test_cast_vote():
    voting = FakeHandle(startTime=100, endTime=200)

    tx_hash = views.cast_vote(ready_session(FakeFacade(voting=voting)), "1", 2, now=150)

    assert tx_hash == "0x" + "ab" * 32
    assert voting.sent == [("vote", (1, 2), 0, None)]


def test_register_voter_uploads_image_first():
    facade = FakeFacade()
    backend = FakeBackend()

    result = views.register_voter(
        ready_session(facade), "Meera", "30", "female", image=b"png", backend=backend, token="jwt"
    )

    assert backend.uploads == [(ImageRole.voter, b"png", "jwt")]
    assert facade.voting.sent == [("registerVoter", ("Meera", 30, 2), 0, None)]
    assert result.image_url == "https://gateway.test/ipfs/QmImage"
    assert result.image_error is None


def test_failed_image_upload_does_not_block_registration():
    facade = FakeFacade()

    result = views.register_candidate(
        ready_session(facade), "Ravi", "Green", 52, 1, image=b"png", backend=FakeBackend(fail=True), token="jwt"
    )

    assert facade.voting.sent[0][0] == "registerCandidate"
    assert result.image_error == ErrorKind.IMAGE_UPLOAD_FAILED
    assert result.tx_hash


def test_registration_without_token_skips_upload():
    facade = FakeFacade()
    backend = FakeBackend()

    result = views.register_voter(ready_session(facade), "Meera", 30, 2, image=b"png", backend=backend)

    assert backend.uploads == []
    assert result.image_error == ErrorKind.IMAGE_UPLOAD_FAILED


def test_buy_tokens_sends_value():
    facade = FakeFacade()

    views.buy_tokens(ready_session(facade), "0.5")

    assert facade.marketplace.sent == [
        ("buyCkToken", (ETHER // 2,), ETHER // 2, views.BUY_TOKEN_GAS_LIMIT)
    ]


def test_approve_then_sell():
    facade = FakeFacade()
    session = ready_session(facade)

    views.approve_tokens(session, 3)
    views.sell_tokens(session, 3)

    assert facade.token.sent == [("approve", (facade.marketplace.address, 3 * ETHER), 0, None)]
    assert facade.marketplace.sent == [("sellCkToken", (3 * ETHER,), 0, None)]


@pytest.mark.parametrize("amount", ["0", "-1", "abc", "", "NaN", "Infinity", "1e-30"])
def test_invalid_amounts_are_rejected(amount):
    facade = FakeFacade()
    with pytest.raises(ValueError):
        views.buy_tokens(ready_session(facade), amount)
    assert facade.marketplace.sent == []


def test_smallest_unit_amount_is_one_wei():
    facade = FakeFacade()

    views.sell_tokens(ready_session(facade), "0.000000000000000001")

    assert facade.marketplace.sent == [("sellCkToken", (1,), 0, None)]


def test_commission_operations_need_commissioner():
    facade = FakeFacade()

    with pytest.raises(VoteDappError) as exc:
        views.emergency_stop(ready_session(facade))

    assert exc.value.kind == ErrorKind.NOT_AUTHORIZED
    assert facade.voting.sent == []


def test_commissioner_can_stop_and_manage_admins():
    facade = FakeFacade(voting=FakeHandle(getAdmins=[AUTHORIZED_ADDRESS]))
    session = ready_session(facade, account=AUTHORIZED_ADDRESS.lower())
    new_admin = Account.create().address

    views.emergency_stop(session)
    views.set_voting_period(session, 60, 3600)
    views.add_admin(session, new_admin.lower())

    assert views.admin_list(session) == [AUTHORIZED_ADDRESS]
    assert [sent[0] for sent in facade.voting.sent] == ["StopVoting", "setVotingPeriod", "addAdmin"]
    assert facade.voting.sent[2][1] == (new_admin,)


@pytest.mark.parametrize(
    "label, gender",
    [("Male", views.Gender.MALE), ("female", views.Gender.FEMALE), ("", views.Gender.NOT_SPECIFIED), (3, views.Gender.OTHER)],
)
def test_gender_from_label(label, gender):
    assert views.gender_from_label(label) == gender


def test_poll_view_uses_configured_interval():
    poller = views.poll_view(ready_session(FakeFacade()), "results", lambda result: None, watch_blocks=False)

    assert isinstance(poller, Poller)
    assert poller.interval == 5
    assert poller.watcher is None


def test_poll_view_rejects_unknown_view():
    with pytest.raises(ValueError):
        views.poll_view(ready_session(FakeFacade()), "gas_price", lambda result: None)
