"""Tests for per-round reward accrual."""

import pytest
from conftest import POOL_ID, raw_event

from lp_rewards.balances import BalanceReconstructor
from lp_rewards.events import EventLog, EventType
from lp_rewards.rewards import RewardAccumulator, round_count
from lp_rewards.tvl import TVLEstimator


def _accumulator(log: EventLog, pool_account: str) -> RewardAccumulator:
    return RewardAccumulator(
        BalanceReconstructor(log, pool_account=pool_account, pool_id=POOL_ID),
        TVLEstimator(log),
    )


def test_round_count_is_inclusive():
    """Test inclusive round count."""
    assert round_count(10, 20) == 11
    assert round_count(7, 7) == 1
    with pytest.raises(ValueError):
        round_count(8, 7)


def test_two_provider_scenario(scenario_log, pool_account):
    """Test the two-provider scenario."""
    acc = _accumulator(scenario_log, pool_account).accumulate(10, 20, 100)
    # 100 // 11 = 9 per round: A alone for rounds 10-19, half each at round 20
    assert acc.per_round == 9
    assert acc.rewards == {"A": 94, "B": 4}
    assert acc.rewards["A"] > acc.rewards["B"] > 0
    assert acc.distributed <= 100
    # TVL 100 for rounds 10-19, 200 at round 20
    assert acc.average_tvl == (10 * 100 + 200) // 11


def test_result_unpacks_to_rewards_and_average_tvl(scenario_log, pool_account):
    """Test result unpacking."""
    rewards, average_tvl = _accumulator(scenario_log, pool_account).accumulate(10, 20, 100)
    assert rewards["A"] == 94
    assert average_tvl == 109


def test_zero_supply_rounds_are_skipped_and_forfeited(pool_account):
    """Test rounds with no supply."""
    log = EventLog.from_records([raw_event(15, EventType.ADD_LIQUIDITY, "A", lp_out=5)])
    acc = _accumulator(log, pool_account).accumulate(10, 20, 110)
    assert acc.per_round == 10
    assert acc.rewards == {"A": 60}


def test_all_zero_range_pays_nothing(pool_account):
    """Test a range with no supply at all."""
    log = EventLog.from_records(
        [
            raw_event(1, EventType.ADD_LIQUIDITY, "A", lp_out=5, tvl=(4, 4)),
            raw_event(2, EventType.REMOVE_LIQUIDITY, "A", lp_in=5, tvl=(0, 0)),
        ]
    )
    acc = _accumulator(log, pool_account).accumulate(2, 6, 1_000)
    assert acc.distributed == 0
    assert acc.average_tvl == 0


def test_truncation_never_exceeds_budget(pool_account):
    """Test accruals stay within budget."""
    log = EventLog.from_records(
        [
            raw_event(1, EventType.ADD_LIQUIDITY, "A", lp_out=7),
            raw_event(3, EventType.ADD_LIQUIDITY, "B", lp_out=11),
            raw_event(4, EventType.ADD_LIQUIDITY, "C", lp_out=13),
            raw_event(6, EventType.REMOVE_LIQUIDITY, "B", lp_in=4),
            raw_event(8, EventType.TRANSFER, "C", lp_in=6, lp_out=6, receiver="D"),
        ]
    )
    for budget in (1, 17, 1_000, 123_456_789):
        acc = _accumulator(log, pool_account).accumulate(1, 10, budget)
        assert acc.distributed <= budget


def test_accrual_grows_with_the_range_at_a_fixed_quota(pool_account):
    """Test accrual monotonicity."""
    log = EventLog.from_records(
        [
            raw_event(1, EventType.ADD_LIQUIDITY, "A", lp_out=3),
            raw_event(4, EventType.ADD_LIQUIDITY, "B", lp_out=9),
            raw_event(7, EventType.REMOVE_LIQUIDITY, "A", lp_in=2),
        ]
    )
    quota = 1_000
    prev = 0
    for to_round in range(1, 12):
        acc = _accumulator(log, pool_account).accumulate(1, to_round, quota * round_count(1, to_round))
        assert acc.rewards["A"] >= prev
        prev = acc.rewards["A"]


def test_replay_is_deterministic(scenario_log, pool_account):
    """Test replay determinism."""
    a = _accumulator(scenario_log, pool_account).accumulate(10, 20, 10**11)
    b = _accumulator(scenario_log, pool_account).accumulate(10, 20, 10**11)
    assert a == b
    assert list(a.rewards.items()) == list(b.rewards.items())


def test_trace_has_one_row_per_round(scenario_log, pool_account):
    """Test per-round trace."""
    acc = _accumulator(scenario_log, pool_account).accumulate(8, 20, 1_300, trace=True)
    assert list(acc.trace["round"]) == list(range(8, 21))
    assert sum(acc.trace["distributed"]) == acc.distributed
    assert list(acc.trace["total_balance"])[:2] == [0, 0]


def test_invalid_arguments(scenario_log, pool_account):
    """Test invalid ranges and budgets."""
    acc = _accumulator(scenario_log, pool_account)
    with pytest.raises(ValueError):
        acc.accumulate(20, 10, 100)
    with pytest.raises(ValueError):
        acc.accumulate(10, 20, -1)


def test_single_round_range(scenario_log, pool_account):
    """Test a single-round range."""
    acc = _accumulator(scenario_log, pool_account).accumulate(10, 10, 100)
    assert acc.rewards == {"A": 100}
