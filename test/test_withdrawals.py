"""
Tests for withdrawal requests and admin processing.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlmodel import Session, select

from app.core.errors import (
    AlreadyProcessedError,
    AuthorizationError,
    InsufficientFundsError,
    ValidationError,
)
from app.models import (
    CreditSource,
    PaymentMethod,
    Project,
    Role,
    Task,
    TaskStatus,
    User,
    Wallet,
    Withdrawal,
    WithdrawalStatus,
)
from app.services.wallet import credit_pending
from app.services.withdrawals import (
    approve_withdrawal,
    cancel_withdrawal,
    reject_withdrawal,
    request_withdrawal,
)


@pytest.fixture()
def freelancer(make_user):
    return make_user("saver", balance="50.00")


@pytest.fixture()
def admin(make_user):
    return make_user("root", Role.admin)


def _request(session, freelancer, amount="30.00"):
    withdrawal = request_withdrawal(
        session,
        freelancer,
        amount=Decimal(amount),
        payment_method=PaymentMethod.stc_pay,
        account_number="0550000000",
    )
    session.commit()
    return withdrawal


def _wallet(session, user):
    return session.exec(select(Wallet).where(Wallet.user_id == user.id)).one()


class TestRequest:

    def test_request_reserves_balance(self, session, freelancer):
        withdrawal = _request(session, freelancer)

        assert withdrawal.status == WithdrawalStatus.pending
        assert _wallet(session, freelancer).balance == Decimal("20.00")

    def test_insufficient_funds_leaves_balance(self, session, freelancer):
        with pytest.raises(InsufficientFundsError) as excinfo:
            _request(session, freelancer, amount="80.00")
        session.rollback()

        assert excinfo.value.extra["available"] == "50.00"
        assert _wallet(session, freelancer).balance == Decimal("50.00")

    @pytest.mark.parametrize("amount", ["0", "-5.00", "10.001"])
    def test_invalid_amount(self, session, freelancer, amount):
        with pytest.raises(ValidationError):
            _request(session, freelancer, amount=amount)

    def test_account_number_required(self, session, freelancer):
        with pytest.raises(ValidationError):
            request_withdrawal(
                session,
                freelancer,
                amount=Decimal("10.00"),
                payment_method=PaymentMethod.paypal,
                account_number="  ",
            )

    def test_pending_credit_is_not_withdrawable(self, session, make_user):
        owner = make_user("client", Role.product_owner)
        worker = make_user("worker")
        project = Project(product_owner_id=owner.id, title="p", budget=Decimal("10.00"))
        session.add(project)
        session.flush()
        task = Task(project_id=project.id, freelancer_id=worker.id, title="t", status=TaskStatus.approved)
        session.add(task)
        session.flush()
        credit_pending(
            session,
            user_id=worker.id,
            task_id=task.id,
            amount=Decimal("9.00"),
            source=CreditSource.task_reward,
            now=datetime.utcnow(),
        )
        session.commit()

        with pytest.raises(InsufficientFundsError):
            _request(session, worker, amount="9.00")

    def test_matured_credit_is_withdrawable(self, session, make_user):
        owner = make_user("client2", Role.product_owner)
        worker = make_user("worker2")
        project = Project(product_owner_id=owner.id, title="p", budget=Decimal("10.00"))
        session.add(project)
        session.flush()
        task = Task(project_id=project.id, freelancer_id=worker.id, title="t", status=TaskStatus.approved)
        session.add(task)
        session.flush()
        credit_pending(
            session,
            user_id=worker.id,
            task_id=task.id,
            amount=Decimal("9.00"),
            source=CreditSource.task_reward,
            now=datetime.utcnow() - timedelta(days=8),
        )
        session.commit()

        _request(session, worker, amount="9.00")

        wallet = _wallet(session, worker)
        assert wallet.balance == Decimal("0.00")
        assert wallet.pending_balance == Decimal("0.00")


class TestProcessing:

    def test_cancel_restores_balance(self, session, freelancer):
        withdrawal = _request(session, freelancer)

        cancel_withdrawal(session, withdrawal, freelancer)
        session.commit()

        assert withdrawal.status == WithdrawalStatus.cancelled
        assert _wallet(session, freelancer).balance == Decimal("50.00")

    def test_only_requester_can_cancel(self, session, make_user, freelancer):
        withdrawal = _request(session, freelancer)
        other = make_user("nosy")

        with pytest.raises(AuthorizationError):
            cancel_withdrawal(session, withdrawal, other)

    def test_approve_records_payout(self, session, freelancer, admin):
        withdrawal = _request(session, freelancer)

        approve_withdrawal(session, withdrawal, admin)
        session.commit()

        assert withdrawal.status == WithdrawalStatus.completed
        assert withdrawal.processed_by == admin.id
        assert withdrawal.processed_at is not None
        wallet = _wallet(session, freelancer)
        assert wallet.balance == Decimal("20.00")
        assert wallet.total_withdrawn == Decimal("30.00")
        assert wallet.is_consistent

    def test_reject_returns_funds(self, session, freelancer, admin):
        withdrawal = _request(session, freelancer)

        reject_withdrawal(session, withdrawal, admin)
        session.commit()

        assert withdrawal.status == WithdrawalStatus.rejected
        wallet = _wallet(session, freelancer)
        assert wallet.balance == Decimal("50.00")
        assert wallet.total_withdrawn == Decimal("0.00")

    def test_processed_withdrawal_cannot_be_processed_again(self, session, freelancer, admin):
        withdrawal = _request(session, freelancer)
        approve_withdrawal(session, withdrawal, admin)
        session.commit()

        with pytest.raises(AlreadyProcessedError):
            reject_withdrawal(session, withdrawal, admin)
        with pytest.raises(AlreadyProcessedError):
            approve_withdrawal(session, withdrawal, admin)
        with pytest.raises(AlreadyProcessedError):
            cancel_withdrawal(session, withdrawal, freelancer)

        assert _wallet(session, freelancer).total_withdrawn == Decimal("30.00")

    def test_only_admin_can_process(self, session, freelancer):
        withdrawal = _request(session, freelancer)

        with pytest.raises(AuthorizationError):
            approve_withdrawal(session, withdrawal, freelancer)
        assert withdrawal.status == WithdrawalStatus.pending


class TestConcurrentRequests:

    def test_second_request_against_the_same_balance_fails(self, engine, session, make_user):
        rich = make_user("rich", balance="100.00")
        first, second = Session(engine), Session(engine)
        try:
            for db in (first, second):
                assert _wallet(db, rich).balance == Decimal("100.00")

            request_withdrawal(
                first,
                first.get(User, rich.id),
                amount=Decimal("80.00"),
                payment_method=PaymentMethod.bank_transfer,
                account_number="SA01",
            )
            first.commit()

            # The second session still holds the wallet it read at 100.00.
            with pytest.raises(InsufficientFundsError) as excinfo:
                request_withdrawal(
                    second,
                    second.get(User, rich.id),
                    amount=Decimal("80.00"),
                    payment_method=PaymentMethod.bank_transfer,
                    account_number="SA01",
                )
            second.rollback()
            assert excinfo.value.extra["available"] == "20.00"
        finally:
            first.close()
            second.close()

        assert _wallet(session, rich).balance == Decimal("20.00")
        pending = session.exec(
            select(Withdrawal).where(Withdrawal.status == WithdrawalStatus.pending)
        ).all()
        assert len(pending) == 1
