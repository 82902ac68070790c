import threading
from concurrent.futures import ThreadPoolExecutor

from fastapi.testclient import TestClient
from sqlmodel import Session

from ..core.errors import InvalidStateTransitionError
from ..services import AccountService


def _request(client: TestClient, owner: dict, currency: str = "PEN") -> dict:
    response = client.post("/accounts/request", json={"currency": currency}, headers=owner["headers"])
    assert response.status_code == 201
    return response.json()


def test_pending_accounts_pagination(client: TestClient, signup, admin: dict) -> None:
    owners = [signup() for _ in range(3)]
    requested = [_request(client, owner) for owner in owners]

    first = client.get("/accounts/pending", params={"page": 1, "limit": 2}, headers=admin["headers"])
    assert first.status_code == 200
    body = first.json()
    assert body["total"] == 3
    assert body["page"] == 1
    assert body["totalPages"] == 2
    assert [a["id"] for a in body["data"]] == [a["id"] for a in requested[:2]]

    second = client.get("/accounts/pending", params={"page": 2, "limit": 2}, headers=admin["headers"]).json()
    assert [a["id"] for a in second["data"]] == [requested[2]["id"]]


def test_pending_accounts_empty_page(client: TestClient, admin: dict) -> None:
    body = client.get("/accounts/pending", headers=admin["headers"]).json()
    assert body == {"data": [], "total": 0, "page": 1, "totalPages": 0}


def test_listing_rejects_bad_pagination(client: TestClient, admin: dict) -> None:
    response = client.get("/accounts/pending", params={"limit": 500}, headers=admin["headers"])
    assert response.status_code == 422


def test_blocked_and_unlock_request_listings(
    client: TestClient, signup, admin: dict, open_account
) -> None:
    owner = signup()
    blocked = open_account(owner, "PEN")
    requested = open_account(owner, "USD")
    client.patch(f"/accounts/{blocked['id']}/block", headers=owner["headers"])
    client.patch(f"/accounts/{requested['id']}/block", headers=owner["headers"])
    client.patch(f"/accounts/{requested['id']}/request-unlock", headers=owner["headers"])

    blocked_page = client.get("/admin/accounts/blocked", headers=admin["headers"]).json()
    assert {a["id"] for a in blocked_page["data"]} == {blocked["id"], requested["id"]}

    unlock_page = client.get("/admin/accounts/unlock-requests", headers=admin["headers"]).json()
    assert [a["id"] for a in unlock_page["data"]] == [requested["id"]]
    assert unlock_page["total"] == 1

    client.patch(f"/admin/accounts/{requested['id']}/unblock", headers=admin["headers"])
    after = client.get("/admin/accounts/unlock-requests", headers=admin["headers"]).json()
    assert after["total"] == 0


def test_admin_listings_are_admin_only(client: TestClient, customer: dict, signup) -> None:
    ops = signup("OPS")
    for path in ("/accounts/pending", "/admin/accounts/blocked", "/admin/accounts/unlock-requests"):
        assert client.get(path, headers=customer["headers"]).status_code == 403
        assert client.get(path, headers=ops["headers"]).status_code == 403


def test_search_by_account_number_owner_and_id(
    client: TestClient, signup, admin: dict
) -> None:
    owner = signup()
    other = signup()
    account = _request(client, owner)
    _request(client, other)

    by_number = client.get(
        "/admin/accounts/search",
        params={"q": account["accountNumber"][4:12]},
        headers=admin["headers"],
    ).json()
    assert account["id"] in [a["id"] for a in by_number["data"]]

    by_owner = client.get(
        "/admin/accounts/search", params={"q": owner["id"]}, headers=admin["headers"]
    ).json()
    assert [a["id"] for a in by_owner["data"]] == [account["id"]]

    by_id = client.get(
        "/admin/accounts/search", params={"q": account["id"].upper()}, headers=admin["headers"]
    ).json()
    assert [a["id"] for a in by_id["data"]] == [account["id"]]


def test_search_with_state_filter(
    client: TestClient, signup, admin: dict, open_account
) -> None:
    owner = signup()
    active = open_account(owner, "PEN")
    pending = _request(client, owner, "USD")

    only_pending = client.get(
        "/admin/accounts/search",
        params={"q": owner["id"], "state": "PENDING_APPROVAL"},
        headers=admin["headers"],
    ).json()
    assert [a["id"] for a in only_pending["data"]] == [pending["id"]]

    only_active = client.get(
        "/admin/accounts/search",
        params={"q": owner["id"], "state": "ACTIVE"},
        headers=admin["headers"],
    ).json()
    assert [a["id"] for a in only_active["data"]] == [active["id"]]


def test_search_treats_wildcards_literally(client: TestClient, signup, admin: dict) -> None:
    _request(client, signup())
    _request(client, signup())

    for query in ("_", "%", "%_%"):
        response = client.get(
            "/admin/accounts/search", params={"q": query}, headers=admin["headers"]
        )
        assert response.status_code == 200
        assert response.json()["total"] == 0, query


def test_search_requires_query(client: TestClient, admin: dict) -> None:
    response = client.get("/admin/accounts/search", headers=admin["headers"])
    assert response.status_code == 422

    blank = client.get("/admin/accounts/search", params={"q": "   "}, headers=admin["headers"])
    assert blank.status_code == 400
    assert blank.json()["message"] == "Search query cannot be empty"


def test_concurrent_activation_succeeds_once(
    client: TestClient, engine, customer: dict
) -> None:
    account_id = _request(client, customer)["id"]
    barrier = threading.Barrier(2)

    def attempt(_: int):
        with Session(engine) as session:
            service = AccountService(session)
            barrier.wait()
            try:
                return service.activate(account_id)
            except InvalidStateTransitionError as exc:
                return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, range(2)))

    assert sum(isinstance(r, InvalidStateTransitionError) for r in results) == 1
    activated = [r for r in results if not isinstance(r, InvalidStateTransitionError)]
    assert activated[0].is_active is True
