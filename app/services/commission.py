from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from app.core.config import settings
from app.core.errors import InvalidBudgetError, InvalidGroupSizeError

CENT = Decimal("0.01")


@dataclass(frozen=True)
class CommissionSplit:
    budget: Decimal
    platform_fee: Decimal
    leader_commission: Decimal
    distributable: Decimal
    reward_per_member: Decimal
    member_count: int
    residual: Decimal

    @property
    def platform_take(self) -> Decimal:
        return self.platform_fee + self.residual


def to_money(value: object) -> Decimal:
    if isinstance(value, bool):
        raise InvalidBudgetError(f"Budget must be a number, got {value!r}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidBudgetError(f"Budget must be a number, got {value!r}") from exc
    if not amount.is_finite():
        raise InvalidBudgetError(f"Budget must be finite, got {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_commission_split(
    budget: object,
    member_count: int,
    *,
    platform_fee_rate: Optional[Decimal] = None,
    leader_commission_rate: Optional[Decimal] = None,
) -> CommissionSplit:
    amount = to_money(budget)
    if amount < 0:
        raise InvalidBudgetError(f"Budget must not be negative, got {amount}")
    if isinstance(member_count, bool) or not isinstance(member_count, int) or member_count <= 0:
        raise InvalidGroupSizeError(f"Member count must be a positive integer, got {member_count!r}")

    fee_rate = settings.platform_fee_rate if platform_fee_rate is None else Decimal(str(platform_fee_rate))
    leader_rate = (
        settings.leader_commission_rate if leader_commission_rate is None else Decimal(str(leader_commission_rate))
    )
    if fee_rate < 0 or leader_rate < 0 or fee_rate + leader_rate > 1:
        raise InvalidBudgetError(f"Commission rates {fee_rate} + {leader_rate} exceed the budget")

    platform_fee = (amount * fee_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    leader_commission = (amount * leader_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    distributable = amount - platform_fee - leader_commission
    if distributable < 0:
        # Both fees rounded up on a tiny budget; give the cent back to members.
        leader_commission += distributable
        distributable = Decimal("0.00")

    # Floor so that reward_per_member * member_count never exceeds the pool.
    reward_per_member = (distributable / member_count).quantize(CENT, rounding=ROUND_DOWN)
    residual = distributable - reward_per_member * member_count

    return CommissionSplit(
        budget=amount,
        platform_fee=platform_fee,
        leader_commission=leader_commission,
        distributable=distributable,
        reward_per_member=reward_per_member,
        member_count=member_count,
        residual=residual,
    )


@dataclass(frozen=True)
class TaskRewardSplit:
    reward: Decimal
    platform_fee: Decimal
    leader_commission: Decimal
    net_reward: Decimal


def split_task_reward(reward: object, *, with_leader: bool) -> TaskRewardSplit:
    split = calculate_commission_split(
        reward,
        1,
        leader_commission_rate=None if with_leader else Decimal("0"),
    )
    return TaskRewardSplit(
        reward=split.budget,
        platform_fee=split.platform_take,
        leader_commission=split.leader_commission,
        net_reward=split.reward_per_member,
    )


def allocate_evenly(total: Decimal, parts: int) -> list[Decimal]:
    """Spread ``total`` over ``parts`` cent amounts that sum exactly to it."""
    if parts <= 0:
        raise InvalidGroupSizeError(f"Cannot allocate over {parts} parts")
    cents = int((total / CENT).to_integral_value(rounding=ROUND_HALF_UP))
    base, remainder = divmod(cents, parts)
    return [(Decimal(base + (1 if index < remainder else 0)) * CENT) for index in range(parts)]
