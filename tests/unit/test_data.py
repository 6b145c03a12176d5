"""
Unit tests for the eligibility feed, gauge registry and checkpoint stores.

HTTP feeds are served by httpx.MockTransport.
"""

import base64
import json

import httpx
import pytest
from solders.pubkey import Pubkey

from conftest import make_voter
from gauge_autovoter.chain.addresses import find_gauge_address, find_quarry_address
from gauge_autovoter.data.checkpoint import (
    CheckpointStore,
    FileCheckpointStore,
    GitHubCheckpointStore,
    checkpoint_store_from_config,
)
from gauge_autovoter.data.eligibility import (
    EligibilityFeed,
    Voter,
    compute_voting_power,
    filter_eligible,
)
from gauge_autovoter.data.gauges import GaugeRegistry, derive_gauge_keys
from gauge_autovoter.shared.exceptions import FeedException, NonRetryableException

NOW = 1_700_000_000
FIVE_YEARS = 5 * 365 * 86400


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _holder(owner=None, delegate=None, amount=100_000_000_000, ends_at=None):
    owner = owner or str(Pubkey.new_unique())
    return {
        "data": {
            "owner": owner,
            "locker": str(Pubkey.new_unique()),
            "amount": str(amount),
            "escrowStartedAt": str(NOW - 86400),
            "escrowEndsAt": str(ends_at or NOW + FIVE_YEARS),
            "voteDelegate": delegate or owner,
        }
    }


class TestVotingPower:
    """Tests for the voting power formula."""

    def test_full_lock(self):
        assert compute_voting_power(100_000, NOW + FIVE_YEARS, now=NOW) == 1_000_000

    def test_half_lock(self):
        power = compute_voting_power(100_000, NOW + FIVE_YEARS // 2, now=NOW)
        assert power == pytest.approx(500_000)

    def test_expired_lock_is_zero(self):
        assert compute_voting_power(100_000, NOW - 10, now=NOW) == 0

    def test_now_is_rounded(self):
        assert compute_voting_power(
            100_000, NOW + FIVE_YEARS, now=NOW + 0.4
        ) == compute_voting_power(100_000, NOW + FIVE_YEARS, now=NOW)


class TestEligibilityFilter:
    """Tests for threshold, allow-list and delegation rules."""

    def test_above_threshold_and_self_delegated(self):
        voter = make_voter(voting_power=60_000e6)
        assert filter_eligible([voter], 50_000e6) == [voter]

    def test_threshold_is_strict(self):
        voter = make_voter(voting_power=50_000e6)
        assert filter_eligible([voter], 50_000e6) == []

    def test_allow_listed_below_threshold(self):
        voter = make_voter(voting_power=1.0)
        assert filter_eligible([voter], 50_000e6, [voter.owner]) == [voter]

    def test_delegated_away_is_never_eligible(self):
        voter = make_voter(voting_power=1e18, delegate=str(Pubkey.new_unique()))
        assert filter_eligible([voter], 50_000e6, [voter.owner]) == []

    def test_voter_from_feed(self):
        record = _holder(amount=100_000)
        voter = Voter.from_feed(record, now=NOW)

        assert voter.owner == record["data"]["owner"]
        assert voter.amount == 100_000
        assert voter.voting_power == 1_000_000
        assert voter.is_self_delegated


class TestEligibilityFeed:
    """Tests for fetching holders over HTTP."""

    @pytest.mark.asyncio
    async def test_fetch_eligible(self):
        rich = _holder()
        poor = _holder(amount=1)
        delegated = _holder(delegate=str(Pubkey.new_unique()))

        def handler(request):
            return httpx.Response(200, json=[rich, poor, delegated])

        feed = EligibilityFeed(
            "https://feed.test/holders.json",
            min_voting_power=50_000e6,
            client=_client(handler),
        )
        eligible = await feed.fetch_eligible(now=NOW)

        assert [v.owner for v in eligible] == [rich["data"]["owner"]]

    @pytest.mark.asyncio
    async def test_malformed_entries_are_skipped(self):
        good = _holder()

        def handler(request):
            return httpx.Response(200, json=[{"data": {"owner": "x"}}, good])

        feed = EligibilityFeed("https://feed.test/h.json", client=_client(handler))
        voters = await feed.fetch_voters(now=NOW)

        assert [v.owner for v in voters] == [good["data"]["owner"]]

    @pytest.mark.asyncio
    async def test_server_error_raises_after_retries(self, no_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        feed = EligibilityFeed("https://feed.test/h.json", client=_client(handler))

        with pytest.raises(FeedException, match="503"):
            await feed.fetch_voters(now=NOW)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_non_list_payload_raises(self, no_sleep):
        def handler(request):
            return httpx.Response(200, json={"holders": []})

        feed = EligibilityFeed("https://feed.test/h.json", client=_client(handler))

        with pytest.raises(FeedException, match="not a JSON list"):
            await feed.fetch_voters(now=NOW)


class TestGaugeRegistry:
    """Tests for deriving gauges from the validator mint list."""

    def test_derive_follows_mint_quarry_gauge(self, gaugemeister, rewarder):
        mint = Pubkey.new_unique()
        quarry = find_quarry_address(rewarder, mint)[0]
        expected = find_gauge_address(gaugemeister, quarry)[0]

        assert derive_gauge_keys(gaugemeister, rewarder, [str(mint)]) == [expected]

    @pytest.mark.asyncio
    async def test_fetch_dedupes_in_feed_order(self, gaugemeister, rewarder):
        m1, m2 = str(Pubkey.new_unique()), str(Pubkey.new_unique())

        def handler(request):
            return httpx.Response(200, json={"v1": m1, "v2": m2, "v3": m1})

        registry = GaugeRegistry(
            "https://feed.test/gauges.json",
            gaugemeister,
            rewarder,
            client=_client(handler),
        )
        gauges = await registry.fetch_gauge_keys()

        assert gauges == derive_gauge_keys(gaugemeister, rewarder, [m1, m2])
        assert len(gauges) == 2


class TestFileCheckpointStore:
    """Tests for the local checkpoint file."""

    def test_base_store_is_abstract(self):
        with pytest.raises(TypeError):
            CheckpointStore()

    @pytest.mark.asyncio
    async def test_missing_file_reads_zero(self, tmp_path):
        store = FileCheckpointStore(str(tmp_path / "missing"))
        assert await store.read_last_epoch() == 0

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        store = FileCheckpointStore(str(tmp_path / "state" / "epoch"))
        await store.write_last_epoch(41)
        assert await store.read_last_epoch() == 41

    @pytest.mark.asyncio
    async def test_garbage_raises(self, tmp_path):
        path = tmp_path / "epoch"
        path.write_text("not-a-number")
        with pytest.raises(NonRetryableException):
            await FileCheckpointStore(str(path)).read_last_epoch()


class TestGitHubCheckpointStore:
    """Tests for the checkpoint kept in a GitHub repository."""

    def _repo(self):
        state = {"content": None, "sha": None, "puts": []}

        def handler(request):
            assert request.headers["Authorization"] == "Bearer secret"
            if request.method == "GET":
                if state["content"] is None:
                    return httpx.Response(404, json={"message": "Not Found"})
                return httpx.Response(
                    200,
                    json={
                        "content": base64.b64encode(state["content"].encode()).decode(),
                        "sha": state["sha"],
                    },
                )
            body = json.loads(request.content)
            state["puts"].append(body)
            state["content"] = base64.b64decode(body["content"]).decode()
            state["sha"] = f"sha{len(state['puts'])}"
            return httpx.Response(200, json={})

        store = GitHubCheckpointStore(
            repository="acme/bot-state",
            token="secret",
            path="last_parsed_epoch",
            client=_client(handler),
            api_base="https://api.github.test",
        )
        return store, state

    @pytest.mark.asyncio
    async def test_absent_file_reads_zero(self):
        store, _ = self._repo()
        assert await store.read_last_epoch() == 0

    @pytest.mark.asyncio
    async def test_write_creates_then_updates(self):
        store, state = self._repo()

        await store.write_last_epoch(5)
        await store.write_last_epoch(6)

        assert await store.read_last_epoch() == 6
        assert "sha" not in state["puts"][0]
        assert state["puts"][1]["sha"] == "sha1"
        assert state["puts"][1]["branch"] == "main"


class TestCheckpointSelection:
    """Tests for choosing the checkpoint store from configuration."""

    def test_file_store_by_default(self, bot_config):
        store = checkpoint_store_from_config(bot_config)
        assert isinstance(store, FileCheckpointStore)

    def test_github_store_with_token_and_repository(self, bot_config):
        config = bot_config.with_overrides(
            github_token="t", github_repository="acme/bot-state"
        )
        store = checkpoint_store_from_config(config)
        assert isinstance(store, GitHubCheckpointStore)
        assert store.repository == "acme/bot-state"
