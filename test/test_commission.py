"""
Tests for the budget commission split.
"""
from decimal import Decimal

import pytest

from app.core.errors import InvalidBudgetError, InvalidGroupSizeError
from app.services.commission import allocate_evenly, calculate_commission_split, split_task_reward


class TestCommissionSplit:
    """calculate_commission_split with the default 10% / 3% rates."""

    def test_budget_split_across_ten_members(self):
        split = calculate_commission_split(Decimal("1000"), 10)

        assert split.platform_fee == Decimal("100.00")
        assert split.leader_commission == Decimal("30.00")
        assert split.distributable == Decimal("870.00")
        assert split.reward_per_member == Decimal("87.00")
        assert split.residual == Decimal("0.00")

    def test_parts_sum_to_budget(self):
        split = calculate_commission_split(Decimal("100"), 7)

        assert split.reward_per_member == Decimal("12.42")
        assert split.residual == Decimal("0.06")
        assert split.platform_take == Decimal("10.06")
        total = split.platform_fee + split.leader_commission + split.reward_per_member * 7 + split.residual
        assert total == split.budget

    def test_members_never_receive_more_than_pool(self):
        for budget, members in [("99.99", 3), ("0.05", 4), ("1234.56", 700), ("10", 9)]:
            split = calculate_commission_split(Decimal(budget), members)
            assert split.reward_per_member * members <= split.distributable
            assert split.residual >= 0

    def test_accepts_int_and_string_budgets(self):
        assert calculate_commission_split(1000, 10) == calculate_commission_split("1000.00", 10)

    def test_zero_budget(self):
        split = calculate_commission_split(Decimal("0"), 5)

        assert split.platform_fee == Decimal("0.00")
        assert split.reward_per_member == Decimal("0.00")

    def test_half_cent_fee_rounds_up(self):
        split = calculate_commission_split(Decimal("0.05"), 1)

        assert split.platform_fee == Decimal("0.01")
        assert split.leader_commission == Decimal("0.00")
        assert split.distributable == Decimal("0.04")

    def test_custom_rates(self):
        split = calculate_commission_split(
            Decimal("200"),
            2,
            platform_fee_rate=Decimal("0.20"),
            leader_commission_rate=Decimal("0"),
        )

        assert split.platform_fee == Decimal("40.00")
        assert split.reward_per_member == Decimal("80.00")


class TestCommissionSplitErrors:

    @pytest.mark.parametrize("members", [0, -3])
    def test_non_positive_member_count(self, members):
        with pytest.raises(InvalidGroupSizeError):
            calculate_commission_split(Decimal("1000"), members)

    def test_fractional_member_count(self):
        with pytest.raises(InvalidGroupSizeError):
            calculate_commission_split(Decimal("1000"), 2.5)

    def test_negative_budget(self):
        with pytest.raises(InvalidBudgetError):
            calculate_commission_split(Decimal("-1"), 10)

    @pytest.mark.parametrize("budget", ["abc", None, True, "NaN"])
    def test_non_numeric_budget(self, budget):
        with pytest.raises(InvalidBudgetError):
            calculate_commission_split(budget, 10)

    def test_rates_over_one(self):
        with pytest.raises(InvalidBudgetError):
            calculate_commission_split(
                Decimal("10"),
                1,
                platform_fee_rate=Decimal("0.9"),
                leader_commission_rate=Decimal("0.2"),
            )


class TestTaskRewardSplit:

    def test_with_leader(self):
        split = split_task_reward(Decimal("20.00"), with_leader=True)

        assert split.platform_fee == Decimal("2.00")
        assert split.leader_commission == Decimal("0.60")
        assert split.net_reward == Decimal("17.40")

    def test_without_leader(self):
        split = split_task_reward(Decimal("20.00"), with_leader=False)

        assert split.leader_commission == Decimal("0.00")
        assert split.net_reward == Decimal("18.00")
        assert split.platform_fee + split.net_reward == split.reward


class TestAllocateEvenly:

    def test_remainder_goes_to_first_parts(self):
        assert allocate_evenly(Decimal("1.00"), 3) == [Decimal("0.34"), Decimal("0.33"), Decimal("0.33")]

    def test_sum_is_exact(self):
        parts = allocate_evenly(Decimal("100.07"), 9)
        assert sum(parts) == Decimal("100.07")

    def test_zero_parts(self):
        with pytest.raises(InvalidGroupSizeError):
            allocate_evenly(Decimal("1.00"), 0)
