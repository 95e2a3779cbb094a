import pytest
from sqlalchemy import select

from furioso.models import AuditLog, UserRole


@pytest.fixture
def fan(make_user):
    return make_user(email="fan@example.com", nickname="Fan")


class TestAdminCoinRoutes:
    """관리자 코인 라우터 테스트"""

    def test_adjust_requires_finance_role(self, client, make_user, fan, auth_headers):
        editor = make_user(role=UserRole.EDITOR)

        response = client.post(
            "/api/v1/admin/coins/adjust",
            json={"user_id": fan.id, "amount": 10, "reason": "Bonus"},
            headers=auth_headers(editor),
        )
        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "AUTH_002"
        assert error["details"]["allowed"] == ["admin", "finance", "super_admin"]

    def test_adjust_rejects_zero_amount(self, client, make_user, fan, auth_headers):
        admin = make_user(role=UserRole.ADMIN)

        response = client.post(
            "/api/v1/admin/coins/adjust",
            json={"user_id": fan.id, "amount": 0, "reason": "Nothing"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_adjust_unknown_user(self, client, make_user, auth_headers):
        admin = make_user(role=UserRole.ADMIN)

        response = client.post(
            "/api/v1/admin/coins/adjust",
            json={"user_id": 777, "amount": 10, "reason": "Bonus"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "USER_404"

    def test_transactions_balance_and_integrity(self, client, make_user, fan, auth_headers):
        admin = make_user(role=UserRole.ADMIN)
        viewer = make_user(role=UserRole.VIEWER)
        headers = auth_headers(admin)

        client.post(
            "/api/v1/admin/coins/adjust",
            json={"user_id": fan.id, "amount": 120, "reason": "Prize"},
            headers=headers,
        )
        client.post(
            "/api/v1/admin/coins/adjust",
            json={"user_id": fan.id, "amount": -20, "reason": "Correction"},
            headers=headers,
        )

        listing = client.get(
            "/api/v1/admin/coins/transactions?amountType=negative&search=fan",
            headers=auth_headers(viewer),
        )
        assert listing.status_code == 200
        assert listing.json()["total_count"] == 1
        assert listing.json()["transactions"][0]["amount"] == -20

        balance = client.get(
            f"/api/v1/admin/coins/balance/{fan.id}", headers=auth_headers(viewer)
        )
        assert balance.json()["balance"] == 100

        metrics = client.get("/api/v1/admin/coins/metrics", headers=auth_headers(viewer))
        assert metrics.status_code == 200
        assert metrics.json()["total_coins_issued"] == 120

        integrity = client.get(f"/api/v1/admin/coins/integrity/{fan.id}", headers=headers)
        assert integrity.json()["status"] == "OK"
        assert client.get(
            "/api/v1/admin/coins/integrity/global", headers=headers
        ).json()["status"] == "OK"

        forbidden = client.get(
            "/api/v1/admin/coins/integrity/global", headers=auth_headers(viewer)
        )
        assert forbidden.status_code == 403

        writes = client.get("/api/v1/admin/audit-logs?action=create", headers=headers)
        assert writes.json()["total_count"] == 2
        reads = client.get("/api/v1/admin/audit-logs?action=read", headers=headers)
        assert reads.json()["total_count"] == 4

    def test_fans_cannot_use_admin_routes(self, client, fan, auth_headers):
        response = client.get("/api/v1/admin/coins/transactions", headers=auth_headers(fan))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_002"

    def test_admin_reads_are_audited(self, client, make_user, fan, auth_headers, db_session):
        viewer = make_user(role=UserRole.VIEWER)

        response = client.get(
            "/api/v1/admin/coins/transactions?amountType=positive",
            headers=auth_headers(viewer),
        )
        assert response.status_code == 200
        metrics = client.get("/api/v1/admin/coins/metrics", headers=auth_headers(viewer))
        assert metrics.status_code == 200

        logs = db_session.execute(select(AuditLog).order_by(AuditLog.id)).scalars().all()
        assert [(log.action, log.entity_type) for log in logs] == [
            ("read", "coin_transaction"),
            ("read", "coin_metrics"),
        ]
        assert logs[0].admin_id == viewer.id
        assert logs[0].details["filters"]["amount_sign"] == "positive"

    def test_rejected_read_is_not_audited(self, client, fan, auth_headers, db_session):
        client.get("/api/v1/admin/coins/metrics", headers=auth_headers(fan))

        assert db_session.execute(select(AuditLog)).first() is None

    def test_survey_reward_replay(self, client, make_user, fan, auth_headers):
        editor = make_user(role=UserRole.EDITOR)
        payload = {"user_id": fan.id, "survey_id": 5, "survey_title": "Match day", "reward": 15}

        first = client.post(
            "/api/v1/admin/coins/survey-rewards", json=payload, headers=auth_headers(editor)
        )
        second = client.post(
            "/api/v1/admin/coins/survey-rewards", json=payload, headers=auth_headers(editor)
        )

        assert first.status_code == 200
        assert first.json()["replayed"] is False
        assert second.json()["replayed"] is True
        assert second.json()["balance"]["balance"] == 15


class TestAdminShopRoutes:
    def test_item_lifecycle_and_cancel_refund(self, client, make_user, fan, auth_headers):
        editor = make_user(role=UserRole.EDITOR)
        admin = make_user(role=UserRole.ADMIN)

        created = client.post(
            "/api/v1/admin/shop/items",
            json={"name": "Scarf", "description": "Team scarf", "coin_price": 40, "stock": 2},
            headers=auth_headers(editor),
        )
        assert created.status_code == 201
        item_id = created.json()["id"]

        patched = client.patch(
            f"/api/v1/admin/shop/items/{item_id}",
            json={"coin_price": 50},
            headers=auth_headers(editor),
        )
        assert patched.json()["coin_price"] == 50

        client.post(
            "/api/v1/admin/coins/adjust",
            json={"user_id": fan.id, "amount": 60, "reason": "Prize"},
            headers=auth_headers(admin),
        )
        order = client.post(
            "/api/v1/shop/redemptions",
            json={"shop_item_id": item_id},
            headers=auth_headers(fan),
        ).json()["order"]

        pending = client.get(
            "/api/v1/admin/shop/redemptions?status=pending", headers=auth_headers(editor)
        )
        assert pending.json()["total_count"] == 1

        bad = client.patch(
            f"/api/v1/admin/shop/redemptions/{order['id']}",
            json={"status": "completed"},
            headers=auth_headers(editor),
        )
        assert bad.status_code == 400
        assert bad.json()["error"]["code"] == "REDEMPTION_001"

        cancelled = client.patch(
            f"/api/v1/admin/shop/redemptions/{order['id']}",
            json={"status": "cancelled"},
            headers=auth_headers(editor),
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        balance = client.get("/api/v1/coins/balance", headers=auth_headers(fan))
        assert balance.json()["balance"] == 60
        assert client.get(f"/api/v1/shop/items/{item_id}").json()["stock"] == 2

    def test_viewer_cannot_create_items(self, client, make_user, auth_headers):
        viewer = make_user(role=UserRole.VIEWER)

        response = client.post(
            "/api/v1/admin/shop/items",
            json={"name": "Scarf", "description": "Team scarf", "coin_price": 40},
            headers=auth_headers(viewer),
        )
        assert response.status_code == 403
