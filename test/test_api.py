"""
End-to-end HTTP flows through the FastAPI app.
"""
from datetime import timedelta

import pytest
from sqlmodel import select

from app.models import Role, WalletCredit
from conftest import TEST_PASSWORD, auth_headers

API = "/api/v1"


@pytest.fixture()
def actors(make_user):
    return {
        "owner": make_user("owner", Role.product_owner, balance="5000.00"),
        "leader": make_user("leader"),
        "member": make_user("member"),
        "admin": make_user("admin_user", Role.admin),
    }


@pytest.fixture()
def group_id(client, actors):
    response = client.post(
        f"{API}/groups",
        json={"name": "فريق المراجعات", "max_members": 50},
        headers=auth_headers(actors["leader"]),
    )
    assert response.status_code == 201, response.text
    gid = response.json()["id"]

    joined = client.post(f"{API}/groups/{gid}/join", headers=auth_headers(actors["member"]))
    assert joined.status_code == 201, joined.text
    return gid


def _approved_task(client, actors, group_id):
    owner, leader, member = (auth_headers(actors[name]) for name in ("owner", "leader", "member"))

    project = client.post(
        f"{API}/projects",
        json={"title": "اختبار تطبيق", "budget": "1000", "tasks_count": 10},
        headers=owner,
    ).json()
    accepted = client.post(f"{API}/projects/{project['id']}/accept", json={"group_id": group_id}, headers=leader)
    assert accepted.status_code == 200, accepted.text
    assert accepted.json()["member_reward"] == "87.00"

    tasks = client.post(f"{API}/projects/{project['id']}/tasks/generate", headers=leader)
    assert tasks.status_code == 201, tasks.text
    task_id = tasks.json()[0]["id"]

    assert client.post(f"{API}/tasks/{task_id}/accept", headers=member).status_code == 200
    assert client.patch(f"{API}/tasks/{task_id}/start-work", headers=member).status_code == 200
    submitted = client.patch(
        f"{API}/tasks/{task_id}/submit-proof",
        json={"submission": "تم التقييم"},
        headers=member,
    )
    assert submitted.json()["status"] == "submitted"

    approved = client.patch(f"{API}/tasks/{task_id}/approve", headers=owner)
    assert approved.status_code == 200, approved.text
    return task_id


def _age_credits(session, *, days):
    for credit in session.exec(select(WalletCredit)).all():
        credit.credited_at -= timedelta(days=days)
        credit.available_at -= timedelta(days=days)
        session.add(credit)
    session.commit()


class TestAuth:

    def test_register_login_and_me(self, client):
        registered = client.post(
            f"{API}/auth/register",
            json={
                "email": "new@example.com",
                "username": "newbie",
                "full_name": "مستقل جديد",
                "password": TEST_PASSWORD,
            },
        )
        assert registered.status_code == 201, registered.text
        assert registered.json()["role"] == "freelancer"

        token = client.post(
            f"{API}/auth/token",
            data={"username": "new@example.com", "password": TEST_PASSWORD},
        )
        assert token.status_code == 200, token.text

        me = client.get(
            f"{API}/users/me",
            headers={"Authorization": f"Bearer {token.json()['access_token']}"},
        )
        assert me.json()["username"] == "newbie"

        wallet = client.get(
            f"{API}/wallet",
            headers={"Authorization": f"Bearer {token.json()['access_token']}"},
        )
        assert wallet.json()["balance"] == "0.00"

    def test_admin_cannot_self_register(self, client):
        response = client.post(
            f"{API}/auth/register",
            json={
                "email": "boss@example.com",
                "username": "boss",
                "full_name": "Boss",
                "password": TEST_PASSWORD,
                "role": "admin",
            },
        )
        assert response.status_code == 422

    def test_wrong_password(self, client, actors):
        response = client.post(f"{API}/auth/token", data={"username": "member", "password": "nope-nope"})
        assert response.status_code == 401


class TestErrorMapping:

    def test_negative_budget_is_invalid_budget(self, client, actors):
        response = client.post(
            f"{API}/projects",
            json={"title": "bad", "budget": "-10", "tasks_count": 2},
            headers=auth_headers(actors["owner"]),
        )
        assert response.status_code == 422
        assert response.json()["kind"] == "InvalidBudgetError"

    def test_missing_task_is_not_found(self, client, actors):
        response = client.get(f"{API}/tasks/999", headers=auth_headers(actors["member"]))
        assert response.status_code == 404
        assert response.json()["kind"] == "NotFoundError"

    def test_wrong_role_is_forbidden(self, client, actors):
        response = client.post(
            f"{API}/projects",
            json={"title": "x", "budget": "10", "tasks_count": 1},
            headers=auth_headers(actors["member"]),
        )
        assert response.status_code == 403

    def test_commission_preview_counts_members(self, client, actors, group_id):
        response = client.get(
            f"{API}/groups/{group_id}/commission-preview",
            params={"budget": "100"},
            headers=auth_headers(actors["owner"]),
        )
        body = response.json()
        assert body["member_count"] == 2
        assert body["reward_per_member"] == "43.50"


class TestSettlementFlow:

    def test_double_approval_conflicts(self, client, actors, group_id):
        task_id = _approved_task(client, actors, group_id)

        again = client.patch(f"{API}/tasks/{task_id}/approve", headers=auth_headers(actors["owner"]))
        assert again.status_code == 409
        assert again.json()["kind"] == "AlreadyFinalizedError"

        credits = client.get(f"{API}/wallet/credits", headers=auth_headers(actors["member"])).json()
        assert [credit["amount"] for credit in credits] == ["87.00"]

    def test_reject_without_feedback(self, client, actors, group_id):
        owner = auth_headers(actors["owner"])
        member = auth_headers(actors["member"])
        project = client.post(
            f"{API}/projects",
            json={"title": "p", "budget": "100", "tasks_count": 1},
            headers=owner,
        ).json()
        client.post(f"{API}/projects/{project['id']}/accept", json={"group_id": group_id}, headers=auth_headers(actors["leader"]))
        task_id = client.post(
            f"{API}/projects/{project['id']}/tasks/generate",
            headers=auth_headers(actors["leader"]),
        ).json()[0]["id"]
        client.post(f"{API}/tasks/{task_id}/accept", headers=member)
        client.patch(f"{API}/tasks/{task_id}/start-work", headers=member)
        client.patch(f"{API}/tasks/{task_id}/submit-proof", json={"submission": "done"}, headers=member)

        response = client.patch(f"{API}/tasks/{task_id}/reject", json={"feedback": ""}, headers=owner)
        assert response.status_code == 422
        assert response.json()["kind"] == "ValidationError"

        response = client.patch(f"{API}/tasks/{task_id}/reject", json={"feedback": "أعد المحاولة"}, headers=owner)
        assert response.json()["status"] == "rejected"
        assert response.json()["review_notes"][0]["feedback"] == "أعد المحاولة"

    def test_wallet_matures_and_withdrawal_is_paid(self, client, session, actors, group_id):
        _approved_task(client, actors, group_id)
        member = auth_headers(actors["member"])
        admin = auth_headers(actors["admin"])

        wallet = client.get(f"{API}/wallet", headers=member).json()
        assert wallet["pending_balance"] == "87.00"
        assert wallet["balance"] == "0.00"

        early = client.post(
            f"{API}/withdrawals",
            json={"amount": "50.00", "payment_method": "stc_pay", "account_number": "0550000000"},
            headers=member,
        )
        assert early.status_code == 400
        assert early.json()["kind"] == "InsufficientFundsError"

        _age_credits(session, days=8)
        matured = client.post(f"{API}/admin/wallets/mature", headers=admin)
        assert matured.json()["matured_credits"] == 2

        wallet = client.get(f"{API}/wallet", headers=member).json()
        assert wallet["balance"] == "87.00"
        assert wallet["pending_balance"] == "0.00"

        created = client.post(
            f"{API}/withdrawals",
            json={"amount": "50.00", "payment_method": "stc_pay", "account_number": "0550000000"},
            headers=member,
        )
        assert created.status_code == 201, created.text
        withdrawal_id = created.json()["id"]

        pending = client.get(f"{API}/admin/withdrawals", params={"status": "pending"}, headers=admin).json()
        assert [item["id"] for item in pending] == [withdrawal_id]

        paid = client.patch(f"{API}/admin/withdrawals/{withdrawal_id}/approve", headers=admin)
        assert paid.json()["status"] == "completed"

        again = client.patch(f"{API}/admin/withdrawals/{withdrawal_id}/reject", headers=admin)
        assert again.status_code == 409
        assert again.json()["kind"] == "AlreadyProcessedError"

        wallet = client.get(f"{API}/wallet", headers=member).json()
        assert wallet["balance"] == "37.00"
        assert wallet["total_withdrawn"] == "50.00"

        summary = client.get(f"{API}/admin/summary", headers=admin).json()
        assert summary["platform_fees_collected"] == "10.00"
        assert summary["total_withdrawn"] == "50.00"
        assert summary["total_escrow"] == "900.00"

    def test_cancelled_withdrawal_restores_balance(self, client, make_user):
        saver = auth_headers(make_user("saver", balance="50.00"))

        created = client.post(
            f"{API}/withdrawals",
            json={"amount": "20.00", "payment_method": "bank_transfer", "account_number": "SA0000"},
            headers=saver,
        ).json()
        cancelled = client.post(f"{API}/withdrawals/{created['id']}/cancel", headers=saver)

        assert cancelled.json()["status"] == "cancelled"
        assert client.get(f"{API}/wallet", headers=saver).json()["balance"] == "50.00"


class TestNotifications:

    def test_member_is_notified_of_approval(self, client, actors, group_id):
        _approved_task(client, actors, group_id)
        member = auth_headers(actors["member"])

        unread = client.get(f"{API}/notifications/unread-count", headers=member).json()
        assert unread["unread"] >= 1

        items = client.get(f"{API}/notifications", headers=member).json()
        assert "task_approved" in {item["type"] for item in items}

        client.patch(f"{API}/notifications/read-all", headers=member)
        assert client.get(f"{API}/notifications/unread-count", headers=member).json()["unread"] == 0


class TestFunding:

    def test_admin_maturation_keeps_fresh_credits_pending(self, client, actors, group_id):
        _approved_task(client, actors, group_id)
        member = auth_headers(actors["member"])

        matured = client.post(
            f"{API}/admin/wallets/mature",
            params={"now": "2099-01-01T00:00:00"},
            headers=auth_headers(actors["admin"]),
        )
        assert matured.status_code == 200, matured.text
        assert matured.json()["matured_credits"] == 0

        wallet = client.get(f"{API}/wallet", headers=member).json()
        assert wallet["balance"] == "0.00"
        assert wallet["pending_balance"] == "87.00"

    def test_deposit_then_escrow_on_accept(self, client, make_user, actors, group_id):
        newcomer = make_user("newcomer", Role.product_owner)
        owner = auth_headers(newcomer)

        project = client.post(
            f"{API}/projects",
            json={"title": "تطبيق جديد", "budget": "300", "tasks_count": 3},
            headers=owner,
        ).json()
        unfunded = client.post(
            f"{API}/projects/{project['id']}/accept",
            json={"group_id": group_id},
            headers=auth_headers(actors["leader"]),
        )
        assert unfunded.status_code == 400
        assert unfunded.json()["kind"] == "InsufficientFundsError"

        deposited = client.post(
            f"{API}/admin/wallets/{newcomer.id}/deposit",
            json={"amount": "500.00"},
            headers=auth_headers(actors["admin"]),
        )
        assert deposited.status_code == 200, deposited.text
        assert deposited.json()["balance"] == "500.00"

        accepted = client.post(
            f"{API}/projects/{project['id']}/accept",
            json={"group_id": group_id},
            headers=auth_headers(actors["leader"]),
        )
        assert accepted.status_code == 200, accepted.text

        wallet = client.get(f"{API}/wallet", headers=owner).json()
        assert wallet["balance"] == "200.00"
        assert wallet["escrow_balance"] == "300.00"
        escrow = client.get(f"{API}/wallet/escrow", headers=owner).json()
        assert [(entry["kind"], entry["amount"]) for entry in escrow] == [("lock", "300.00")]

    def test_deposit_is_for_product_owners(self, client, actors):
        response = client.post(
            f"{API}/admin/wallets/{actors['member'].id}/deposit",
            json={"amount": "10.00"},
            headers=auth_headers(actors["admin"]),
        )
        assert response.status_code == 404

    def test_sub_cent_withdrawal_is_a_validation_error(self, client, make_user):
        saver = auth_headers(make_user("precise", balance="50.00"))

        response = client.post(
            f"{API}/withdrawals",
            json={"amount": "10.001", "payment_method": "paypal", "account_number": "me@example.com"},
            headers=saver,
        )
        assert response.status_code == 422
        assert response.json()["kind"] == "ValidationError"


class TestPrivateGroup:

    def test_request_approve_and_remove(self, client, actors):
        leader = auth_headers(actors["leader"])
        member = auth_headers(actors["member"])
        gid = client.post(
            f"{API}/groups",
            json={"name": "فريق مغلق", "privacy": "private"},
            headers=leader,
        ).json()["id"]

        direct = client.post(f"{API}/groups/{gid}/join", headers=member)
        assert direct.status_code == 403
        assert direct.json()["kind"] == "AuthorizationError"

        request = client.post(f"{API}/groups/{gid}/requests", headers=member)
        assert request.status_code == 201, request.text
        pending = client.get(f"{API}/groups/{gid}/requests", headers=leader).json()
        assert [item["id"] for item in pending] == [request.json()["id"]]

        reviewed = client.patch(
            f"{API}/groups/{gid}/requests/{request.json()['id']}",
            json={"status": "approved"},
            headers=leader,
        )
        assert reviewed.json()["status"] == "approved"
        assert client.get(f"{API}/groups/{gid}").json()["current_members"] == 2

        removed = client.delete(f"{API}/groups/{gid}/members/{actors['member'].id}", headers=leader)
        assert removed.status_code == 204
        assert client.get(f"{API}/groups/{gid}").json()["current_members"] == 1
