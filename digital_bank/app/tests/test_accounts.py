import uuid

from fastapi.testclient import TestClient

from ..services import account_locks


def _flags(account: dict) -> tuple[bool, bool, bool]:
    return account["isPending"], account["isActive"], account["isUnlockRequest"]


def test_request_account_starts_pending(client: TestClient, customer: dict) -> None:
    response = client.post(
        "/accounts/request", json={"currency": "PEN"}, headers=customer["headers"]
    )
    assert response.status_code == 201
    account = response.json()
    assert account["state"] == "PENDING_APPROVAL"
    assert _flags(account) == (True, False, False)
    assert account["balance"] == "0.00"
    assert account["ownerId"] == customer["id"]
    assert account["type"] == "CHECKING"
    assert len(account["accountNumber"]) == 16
    assert account["accountNumber"].isdigit()


def test_request_account_rejects_second_account_in_currency(
    client: TestClient, customer: dict, open_account
) -> None:
    open_account(customer, "PEN")

    response = client.post(
        "/accounts/request", json={"currency": "PEN"}, headers=customer["headers"]
    )
    assert response.status_code == 409
    assert response.json()["message"] == "You already have a PEN account"

    other_currency = client.post(
        "/accounts/request", json={"currency": "USD"}, headers=customer["headers"]
    )
    assert other_currency.status_code == 201


def test_request_account_rejects_duplicate_pending_request(
    client: TestClient, customer: dict
) -> None:
    first = client.post(
        "/accounts/request", json={"currency": "USD"}, headers=customer["headers"]
    )
    assert first.status_code == 201

    second = client.post(
        "/accounts/request", json={"currency": "USD"}, headers=customer["headers"]
    )
    assert second.status_code == 409
    assert "pending approval" in second.json()["message"]


def test_admin_cannot_request_customer_account(client: TestClient, admin: dict) -> None:
    response = client.post(
        "/accounts/request", json={"currency": "PEN"}, headers=admin["headers"]
    )
    assert response.status_code == 403


def test_activate_shows_in_user_accounts(
    client: TestClient, customer: dict, admin: dict
) -> None:
    account_id = client.post(
        "/accounts/request", json={"currency": "USD"}, headers=customer["headers"]
    ).json()["id"]

    activated = client.patch(f"/accounts/{account_id}/activate", headers=admin["headers"])
    assert activated.status_code == 200
    assert activated.json()["activatedAt"] is not None

    accounts = client.get(f"/accounts/user/{customer['id']}", headers=customer["headers"])
    assert accounts.status_code == 200
    [account] = accounts.json()
    assert account["id"] == account_id
    assert account["isActive"] is True
    assert account["isPending"] is False
    assert account["state"] == "ACTIVE"


def test_activate_requires_pending_state(
    client: TestClient, customer: dict, admin: dict, open_account
) -> None:
    account = open_account(customer)

    response = client.patch(f"/accounts/{account['id']}/activate", headers=admin["headers"])
    assert response.status_code == 409
    assert response.json()["message"] == "Only accounts pending approval can be activated"


def test_activate_is_admin_only(client: TestClient, customer: dict) -> None:
    account_id = client.post(
        "/accounts/request", json={"currency": "PEN"}, headers=customer["headers"]
    ).json()["id"]

    response = client.patch(f"/accounts/{account_id}/activate", headers=customer["headers"])
    assert response.status_code == 403


def test_activate_unknown_account_returns_404(client: TestClient, admin: dict) -> None:
    response = client.patch("/accounts/does-not-exist/activate", headers=admin["headers"])
    assert response.status_code == 404
    assert response.json() == {
        "statusCode": 404,
        "message": "Account does-not-exist not found",
        "error": "Not Found",
    }


def test_unknown_accounts_leave_no_locks_behind(client: TestClient, customer: dict) -> None:
    for _ in range(20):
        response = client.patch(f"/accounts/{uuid.uuid4()}/block", headers=customer["headers"])
        assert response.status_code == 404
    assert len(account_locks) == 0


def test_routing_errors_use_error_body(client: TestClient) -> None:
    missing = client.get("/no-such-route")
    assert missing.status_code == 404
    assert missing.json() == {"statusCode": 404, "message": "Not Found", "error": "Not Found"}

    wrong_method = client.delete("/health")
    assert wrong_method.status_code == 405
    assert wrong_method.json()["statusCode"] == 405
    assert wrong_method.json()["error"] == "Method Not Allowed"


def test_block_unlock_request_and_unblock_cycle(
    client: TestClient, customer: dict, admin: dict, open_account
) -> None:
    account = open_account(customer)
    account_id = account["id"]

    blocked = client.patch(f"/accounts/{account_id}/block", headers=customer["headers"])
    assert blocked.status_code == 200
    blocked_body = blocked.json()
    assert blocked_body["state"] == "BLOCKED"
    assert _flags(blocked_body) == (False, False, False)
    assert blocked_body["blockedAt"] is not None

    requested = client.patch(
        f"/accounts/{account_id}/request-unlock", headers=customer["headers"]
    )
    assert requested.status_code == 200
    requested_body = requested.json()
    assert requested_body["state"] == "UNLOCK_REQUESTED"
    assert _flags(requested_body) == (False, False, True)
    assert requested_body["unlockRequestedAt"] is not None

    unblocked = client.patch(
        f"/admin/accounts/{account_id}/unblock", headers=admin["headers"]
    )
    assert unblocked.status_code == 200
    unblocked_body = unblocked.json()
    assert unblocked_body["state"] == "ACTIVE"
    assert _flags(unblocked_body) == (False, True, False)
    assert unblocked_body["blockedAt"] is None
    assert unblocked_body["unlockRequestedAt"] is None


def test_request_unlock_twice_keeps_first_timestamp(
    client: TestClient, customer: dict, open_account
) -> None:
    account_id = open_account(customer)["id"]
    client.patch(f"/accounts/{account_id}/block", headers=customer["headers"])

    first = client.patch(f"/accounts/{account_id}/request-unlock", headers=customer["headers"])
    second = client.patch(f"/accounts/{account_id}/request-unlock", headers=customer["headers"])

    assert second.status_code == 200
    assert second.json() == first.json()


def test_request_unlock_requires_blocked_account(
    client: TestClient, customer: dict, open_account
) -> None:
    account_id = open_account(customer)["id"]

    response = client.patch(f"/accounts/{account_id}/request-unlock", headers=customer["headers"])
    assert response.status_code == 409
    assert response.json()["message"] == "Only blocked accounts can request an unlock"


def test_request_unlock_is_owner_only(
    client: TestClient, customer: dict, admin: dict, open_account
) -> None:
    account_id = open_account(customer)["id"]
    client.patch(f"/accounts/{account_id}/block", headers=customer["headers"])

    response = client.patch(f"/accounts/{account_id}/request-unlock", headers=admin["headers"])
    assert response.status_code == 403


def test_block_rejects_pending_and_already_blocked(
    client: TestClient, customer: dict, open_account
) -> None:
    pending_id = client.post(
        "/accounts/request", json={"currency": "USD"}, headers=customer["headers"]
    ).json()["id"]
    pending = client.patch(f"/accounts/{pending_id}/block", headers=customer["headers"])
    assert pending.status_code == 409

    active_id = open_account(customer, "PEN")["id"]
    client.patch(f"/accounts/{active_id}/block", headers=customer["headers"])
    again = client.patch(f"/accounts/{active_id}/block", headers=customer["headers"])
    assert again.status_code == 409
    assert again.json()["message"] == "Account is already blocked"


def test_admin_can_block_but_other_customer_cannot(
    client: TestClient, signup, admin: dict, open_account
) -> None:
    owner = signup()
    stranger = signup()
    account_id = open_account(owner)["id"]

    forbidden = client.patch(f"/accounts/{account_id}/block", headers=stranger["headers"])
    assert forbidden.status_code == 403

    blocked = client.patch(f"/accounts/{account_id}/block", headers=admin["headers"])
    assert blocked.status_code == 200
    assert blocked.json()["state"] == "BLOCKED"


def test_unblock_requires_blocked_account(
    client: TestClient, customer: dict, admin: dict, open_account
) -> None:
    account_id = open_account(customer)["id"]

    response = client.patch(f"/admin/accounts/{account_id}/unblock", headers=admin["headers"])
    assert response.status_code == 409


def test_user_accounts_visible_to_owner_and_admin_only(
    client: TestClient, signup, admin: dict, open_account
) -> None:
    owner = signup()
    stranger = signup()
    open_account(owner)

    assert client.get(f"/accounts/user/{owner['id']}", headers=stranger["headers"]).status_code == 403
    as_admin = client.get(f"/accounts/user/{owner['id']}", headers=admin["headers"])
    assert as_admin.status_code == 200
    assert len(as_admin.json()) == 1


def test_accounts_require_authentication(client: TestClient, customer: dict) -> None:
    client.cookies.clear()

    response = client.get(f"/accounts/user/{customer['id']}")
    assert response.status_code == 401
    assert response.json()["message"] == "Authentication required"
