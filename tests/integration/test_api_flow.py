"""
Integration tests for the marketplace API: wallet, listings, unlock, reports
"""
import pytest
from decimal import Decimal
from fastapi import status


def money(value) -> Decimal:
    return Decimal(str(value))


class TestMarketplaceFlow:
    """Top up, list, verify, unlock and read credentials through the API"""

    def test_full_purchase_flow(self, client, admin, owner, make_user, platform, auth_headers):
        buyer = make_user(name="Fresh Buyer")
        buyer_headers = auth_headers(buyer)
        admin_headers = auth_headers(admin)
        owner_headers = auth_headers(owner)

        # Top up through an admin-approved request
        topup = client.post(
            "/api/v1/wallet/topup-request",
            json={"amount": "50.00", "transaction_id": "BANK-0001"},
            headers=buyer_headers,
        )
        assert topup.status_code == status.HTTP_201_CREATED
        assert topup.json()["status"] == "pending"

        approved = client.post(
            f"/api/v1/wallet/admin/topup-requests/{topup.json()['id']}/approve",
            json={"notes": "Payment received"},
            headers=admin_headers,
        )
        assert approved.status_code == status.HTTP_200_OK
        assert approved.json()["status"] == "approved"

        balance = client.get("/api/v1/users/wallet-balance", headers=buyer_headers).json()
        assert money(balance["balance"]) == Decimal("50.00")

        # Owner lists a subscription; it waits for verification
        created = client.post(
            "/api/v1/subscriptions/",
            json={
                "platform_id": platform.id,
                "username": "family@example.com",
                "password": "popcorn!",
                "price_per_hour": "5.00",
            },
            headers=owner_headers,
        )
        assert created.status_code == status.HTTP_201_CREATED
        subscription = created.json()
        assert subscription["is_verified"] is False
        assert "credentials_password" not in subscription
        assert "password" not in subscription

        listing = client.get("/api/v1/subscriptions/", headers=buyer_headers).json()
        assert subscription["id"] not in [s["id"] for s in listing]

        refused = client.post(
            f"/api/v1/subscriptions/{subscription['id']}/unlock", json={"hours": 1}, headers=buyer_headers
        )
        assert refused.status_code == status.HTTP_400_BAD_REQUEST
        assert refused.json()["error"] == "NOT_VERIFIED"

        pending = client.get("/api/v1/admin/subscriptions/pending", headers=admin_headers).json()
        assert [s["id"] for s in pending] == [subscription["id"]]

        verified = client.post(
            f"/api/v1/admin/subscriptions/{subscription['id']}/verify",
            json={"is_verified": True, "note": "Checked"},
            headers=admin_headers,
        )
        assert verified.json()["is_verified"] is True

        listing = client.get("/api/v1/subscriptions/", headers=buyer_headers).json()
        assert subscription["id"] in [s["id"] for s in listing]

        # Unlock three hours: 15.00 paid, 1.50 commission, 13.50 to the owner
        unlocked = client.post(
            f"/api/v1/subscriptions/{subscription['id']}/unlock", json={"hours": 3}, headers=buyer_headers
        )
        assert unlocked.status_code == status.HTTP_201_CREATED
        result = unlocked.json()
        assert money(result["total_paid"]) == Decimal("15.00")
        assert money(result["commission_amount"]) == Decimal("1.50")
        assert money(result["owner_amount"]) == Decimal("13.50")
        assert result["commission_paid"] is True
        assert money(result["new_balance"]) == Decimal("35.00")
        assert result["grant"]["end_time"] - result["grant"]["start_time"] == 3 * 3600
        assert result["grant"]["hours"] == 3

        credentials = client.get(
            f"/api/v1/subscriptions/{subscription['id']}/credentials", headers=buyer_headers
        )
        assert credentials.status_code == status.HTTP_200_OK
        assert credentials.json()["username"] == "family@example.com"
        assert credentials.json()["password"] == "popcorn!"
        assert credentials.json()["platform_name"] == "Netflix"

        again = client.post(
            f"/api/v1/subscriptions/{subscription['id']}/unlock", json={"hours": 1}, headers=buyer_headers
        )
        assert again.json()["error"] == "ALREADY_ACTIVE"

        owner_balance = client.get("/api/v1/users/wallet-balance", headers=owner_headers).json()
        admin_balance = client.get("/api/v1/users/wallet-balance", headers=admin_headers).json()
        assert money(owner_balance["balance"]) == Decimal("13.50")
        assert money(admin_balance["balance"]) == Decimal("1.50")

        grants = client.get("/api/v1/users/my-subscriptions", headers=buyer_headers).json()
        assert [g["subscription_id"] for g in grants] == [subscription["id"]]

        history = client.get("/api/v1/users/wallet-transactions", headers=buyer_headers).json()
        assert sorted(t["type"] for t in history) == ["purchase", "topup"]

        purchases = client.get("/api/v1/admin/transactions?type=purchase", headers=admin_headers).json()
        assert len(purchases) == 1
        assert money(purchases[0]["amount"]) == Decimal("-15.00")

    def test_credentials_without_access(self, client, buyer, subscription, auth_headers):
        response = client.get(f"/api/v1/subscriptions/{subscription.id}/credentials", headers=auth_headers(buyer))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "ACCESS_DENIED"

    @pytest.mark.parametrize("hours", [0, 721, -1])
    def test_hours_out_of_range(self, client, buyer, subscription, auth_headers, hours):
        response = client.post(
            f"/api/v1/subscriptions/{subscription.id}/unlock", json={"hours": hours}, headers=auth_headers(buyer)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_FAILED"

    def test_insufficient_balance(self, client, admin, buyer, make_subscription, owner, auth_headers):
        pricey = make_subscription(owner, price_per_hour="60.00")

        response = client.post(
            f"/api/v1/subscriptions/{pricey.id}/unlock", json={"hours": 2}, headers=auth_headers(buyer)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "INSUFFICIENT_BALANCE"
        balance = client.get("/api/v1/users/wallet-balance", headers=auth_headers(buyer)).json()
        assert money(balance["balance"]) == Decimal("100.00")

    def test_owner_cannot_buy_own_listing(self, client, owner, subscription, auth_headers):
        response = client.post(
            f"/api/v1/subscriptions/{subscription.id}/unlock", json={"hours": 1}, headers=auth_headers(owner)
        )

        assert response.json()["error"] == "SELF_PURCHASE_FORBIDDEN"

    def test_unknown_subscription(self, client, buyer, auth_headers):
        response = client.post("/api/v1/subscriptions/9999/unlock", json={"hours": 1}, headers=auth_headers(buyer))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_cancel_grant(self, client, admin, buyer, subscription, auth_headers):
        headers = auth_headers(buyer)
        grant = client.post(
            f"/api/v1/subscriptions/{subscription.id}/unlock", json={"hours": 1}, headers=headers
        ).json()["grant"]

        cancelled = client.post(f"/api/v1/users/my-subscriptions/{grant['id']}/cancel", headers=headers)

        assert cancelled.status_code == status.HTTP_200_OK
        assert cancelled.json()["status"] == "cancelled"
        denied = client.get(f"/api/v1/subscriptions/{subscription.id}/credentials", headers=headers)
        assert denied.status_code == status.HTTP_403_FORBIDDEN

    def test_only_owner_edits_listing(self, client, buyer, owner, subscription, auth_headers):
        forbidden = client.put(
            f"/api/v1/subscriptions/{subscription.id}", json={"price_per_hour": "1.00"}, headers=auth_headers(buyer)
        )
        updated = client.put(
            f"/api/v1/subscriptions/{subscription.id}", json={"price_per_hour": "12.00"}, headers=auth_headers(owner)
        )

        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert money(updated.json()["price_per_hour"]) == Decimal("12.00")


class TestAdminAccess:

    @pytest.mark.parametrize("method, path", [
        ("get", "/api/v1/admin/users"),
        ("get", "/api/v1/admin/transactions"),
        ("get", "/api/v1/admin/settings"),
        ("get", "/api/v1/wallet/admin/topup-requests"),
        ("get", "/api/v1/reports/admin"),
    ])
    def test_non_admin_forbidden(self, client, buyer, auth_headers, method, path):
        response = getattr(client, method)(path, headers=auth_headers(buyer))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"] == "FORBIDDEN"

    def test_balance_adjustment(self, client, admin, buyer, auth_headers):
        response = client.post(
            f"/api/v1/admin/users/{buyer.id}/balance",
            json={"amount": "-30.00", "notes": "Chargeback"},
            headers=auth_headers(admin),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["processed_by_admin_id"] == admin.id
        user = client.get(f"/api/v1/admin/users/{buyer.id}", headers=auth_headers(admin)).json()
        assert money(user["balance"]) == Decimal("70.00")

    def test_user_listing(self, client, admin, buyer, owner, auth_headers):
        data = client.get("/api/v1/admin/users?page_size=2", headers=auth_headers(admin)).json()

        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert len(data["users"]) == 2

    def test_commission_setting_applies_to_unlock(self, client, admin, buyer, subscription, auth_headers):
        updated = client.put(
            "/api/v1/admin/settings/admin_commission_percentage",
            json={"value": "20"},
            headers=auth_headers(admin),
        )
        assert updated.status_code == status.HTTP_200_OK

        result = client.post(
            f"/api/v1/subscriptions/{subscription.id}/unlock", json={"hours": 1}, headers=auth_headers(buyer)
        ).json()

        assert money(result["commission_percentage"]) == Decimal("20")
        assert money(result["commission_amount"]) == Decimal("2.00")
        assert money(result["owner_amount"]) == Decimal("8.00")

    def test_invalid_commission_setting(self, client, admin, auth_headers):
        response = client.put(
            "/api/v1/admin/settings/admin_commission_percentage",
            json={"value": "150"},
            headers=auth_headers(admin),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestReportsApi:

    def test_resolved_report_delists_subscription(self, client, admin, buyer, subscription, auth_headers):
        report = client.post(
            "/api/v1/reports/",
            json={"subscription_id": subscription.id, "reason": "Password no longer works"},
            headers=auth_headers(buyer),
        )
        assert report.status_code == status.HTTP_201_CREATED

        duplicate = client.post(
            "/api/v1/reports/",
            json={"subscription_id": subscription.id, "reason": "Still broken"},
            headers=auth_headers(buyer),
        )
        assert duplicate.status_code == status.HTTP_409_CONFLICT

        resolved = client.post(
            f"/api/v1/reports/admin/{report.json()['id']}/resolve",
            json={"status": "resolved", "notes": "Owner changed password"},
            headers=auth_headers(admin),
        )
        assert resolved.json()["status"] == "resolved"

        listing = client.get(f"/api/v1/subscriptions/{subscription.id}", headers=auth_headers(buyer)).json()
        assert listing["is_active"] is False
        assert listing["is_verified"] is False

        mine = client.get("/api/v1/reports/my-reports", headers=auth_headers(buyer)).json()
        assert [r["status"] for r in mine] == ["resolved"]


class TestPlatformsApi:

    def test_list_is_cached(self, client, platform, redis_client):
        response = client.get("/api/v1/platforms/")

        assert [p["name"] for p in response.json()] == ["Netflix"]
        assert redis_client.setex.call_args.args[0] == "subshare:platforms:active"

    def test_cached_list_served(self, client, redis_client):
        redis_client.get.return_value = (
            '[{"id": 7, "name": "Cached", "logo_url": null, "is_active": true, '
            '"created_at": "2026-01-01T00:00:00"}]'
        )

        response = client.get("/api/v1/platforms/")

        assert response.json()[0]["name"] == "Cached"

    def test_admin_create_invalidates_cache(self, client, admin, auth_headers, redis_client):
        response = client.post("/api/v1/platforms/", json={"name": "HBO Max"}, headers=auth_headers(admin))

        assert response.status_code == status.HTTP_201_CREATED
        redis_client.delete.assert_called_with("subshare:platforms:active")

    def test_duplicate_platform(self, client, admin, platform, auth_headers):
        response = client.post("/api/v1/platforms/", json={"name": "Netflix"}, headers=auth_headers(admin))

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_user_cannot_create_platform(self, client, buyer, auth_headers):
        response = client.post("/api/v1/platforms/", json={"name": "Hulu"}, headers=auth_headers(buyer))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_search(self, client, platform):
        response = client.get("/api/v1/platforms/search?q=flix")

        assert [p["name"] for p in response.json()] == ["Netflix"]
