from furioso.models import UserRole


class TestUserAndCoinRoutes:
    """사용자/코인 라우터 테스트"""

    def test_register_then_read_balance(self, client):
        response = client.post(
            "/api/v1/users", json={"email": "fan@example.com", "nickname": "fanboy"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["coin_balance"] == 100
        headers = {"Authorization": f"Bearer {body['access_token']}"}

        balance = client.get("/api/v1/coins/balance", headers=headers)
        assert balance.status_code == 200
        assert balance.json()["balance"] == 100
        assert balance.json()["lifetime_earned"] == 100

        history = client.get("/api/v1/coins/transactions", headers=headers)
        assert history.status_code == 200
        data = history.json()
        assert data["total_count"] == 1
        assert data["entries"][0]["transaction_type"] == "signup_bonus"

        me = client.get("/api/v1/users/me", headers=headers)
        assert me.json()["email"] == "fan@example.com"

    def test_duplicate_registration(self, client, make_user):
        make_user(email="dupe@example.com")

        response = client.post(
            "/api/v1/users", json={"email": "dupe@example.com", "nickname": "dupe"}
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT_001"

    def test_balance_requires_token(self, client):
        response = client.get("/api/v1/coins/balance")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_invalid_token(self, client):
        response = client.get(
            "/api/v1/coins/balance", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_history_limit_validation(self, client, make_user, auth_headers):
        user = make_user()
        response = client.get(
            "/api/v1/coins/transactions?limit=500", headers=auth_headers(user)
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers


class TestShopRoutes:
    def test_redeem_flow(self, client, make_user, make_item, auth_headers):
        user = make_user()
        finance = make_user(role=UserRole.FINANCE)
        item = make_item(coin_price=30, stock=2)

        grant = client.post(
            "/api/v1/admin/coins/adjust",
            json={"user_id": user.id, "amount": 100, "reason": "Welcome"},
            headers=auth_headers(finance),
        )
        assert grant.status_code == 201

        items = client.get("/api/v1/shop/items")
        assert [i["id"] for i in items.json()] == [item.id]

        redeemed = client.post(
            "/api/v1/shop/redemptions",
            json={"shop_item_id": item.id, "quantity": 1},
            headers=auth_headers(user),
        )
        assert redeemed.status_code == 201
        assert redeemed.json()["balance"]["balance"] == 70
        assert redeemed.json()["order"]["status"] == "pending"

        mine = client.get("/api/v1/shop/redemptions/me", headers=auth_headers(user))
        assert len(mine.json()) == 1

    def test_redeem_insufficient_funds(self, client, make_user, make_item, auth_headers):
        user = make_user()
        item = make_item(coin_price=30)

        response = client.post(
            "/api/v1/shop/redemptions",
            json={"shop_item_id": item.id},
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "BALANCE_001"
        assert error["details"]["balance"] == 0
        assert error["details"]["requested"] == 30

    def test_missing_item(self, client):
        response = client.get("/api/v1/shop/items/999")
        assert response.status_code == 404
