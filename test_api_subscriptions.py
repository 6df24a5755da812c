"""HTTP tests for the subscriptions router with an in-memory repository."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from subs_api.deps import get_repository
from subs_api.errors import NoSuchRowError, RepositoryError
from subs_api.main import create_app
from subs_api.models import ListOpts, RangeOpts, SortColumn, SubFilter, Subscription

UID = "60601fee-2bf1-4721-ae6f-7636e79a0cba"


class FakeRepo:
    def __init__(self) -> None:
        self.rows: dict[int, Subscription] = {}
        self.next_id = 1
        self.fail = False
        self.last_opts: Optional[ListOpts] = None
        self.last_sum_args: Optional[tuple] = None

    def _check(self) -> None:
        if self.fail:
            raise RepositoryError("error getting subscription: connection refused")

    def add_sub(self, sub: Subscription) -> int:
        self._check()
        new_id = self.next_id
        self.next_id += 1
        self.rows[new_id] = sub.model_copy(update={"id": new_id})
        return new_id

    def get_sub(self, sub_id: int) -> Subscription:
        self._check()
        if sub_id not in self.rows:
            raise NoSuchRowError()
        return self.rows[sub_id]

    def update_sub(self, sub_id: int, sub: Subscription) -> None:
        self._check()
        if sub_id not in self.rows:
            raise NoSuchRowError()
        self.rows[sub_id] = sub.model_copy(update={"id": sub_id})

    def delete_sub(self, sub_id: int) -> None:
        self._check()
        if self.rows.pop(sub_id, None) is None:
            raise NoSuchRowError()

    def list_subs(self, opts: Optional[ListOpts] = None) -> List[Subscription]:
        self._check()
        self.last_opts = opts
        return list(self.rows.values())

    def price_sum(self, filter: Optional[SubFilter] = None, period: Optional[RangeOpts] = None) -> int:
        self._check()
        self.last_sum_args = (filter, period)
        if not self.rows:
            raise NoSuchRowError()
        return sum(s.price for s in self.rows.values())


@pytest.fixture()
def repo():
    return FakeRepo()


@pytest.fixture()
def client(repo):
    app = create_app()
    app.dependency_overrides[get_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


def _body(**overrides) -> dict:
    body = {"name": "yandex", "price": 400, "uid": UID, "start_date": "07-2025", "expires": "08-2025"}
    body.update(overrides)
    return body


def test_add_and_get_subscription(client, repo):
    resp = client.post("/subs/add", json=_body())
    assert resp.status_code == status.HTTP_200_OK
    assert resp.json() == {"cod": 200, "msg": "sub added", "id": 1}
    assert resp.headers.get("X-Request-ID")

    resp = client.get("/subs/1")
    assert resp.status_code == status.HTTP_200_OK
    assert resp.json() == {
        "id": 1,
        "name": "yandex",
        "price": 400,
        "uid": UID,
        "start_date": "07-2025",
        "expires": "08-2025",
    }


def test_add_with_bad_date_is_bad_request(client, repo):
    resp = client.post("/subs/add", json=_body(start_date="2025-07"))
    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    assert resp.json() == {"cod": 400, "error": "invalid request"}
    assert repo.rows == {}


def test_get_without_expires_omits_field(client, repo):
    body = _body()
    del body["expires"]
    client.post("/subs/add", json=body)

    data = client.get("/subs/1").json()
    assert "expires" not in data


def test_get_missing_is_not_found(client):
    resp = client.get("/subs/99")
    assert resp.status_code == status.HTTP_404_NOT_FOUND
    assert resp.json() == {"cod": 404, "error": "no such row"}


def test_non_numeric_id_is_bad_request(client):
    resp = client.get("/subs/abc")
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


def test_backend_failure_is_generic_internal_error(client, repo):
    repo.fail = True
    resp = client.get("/subs/1")
    assert resp.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert resp.json() == {"cod": 500, "error": "internal server error"}
    assert "connection refused" not in resp.text


def test_update_and_delete(client, repo):
    client.post("/subs/add", json=_body())

    resp = client.put("/subs/1", json=_body(name="spotify", price=300))
    assert resp.json() == {"cod": 200, "msg": "subscription updated"}
    assert repo.rows[1].name == "spotify"

    resp = client.delete("/subs/1")
    assert resp.json() == {"cod": 200, "msg": "subscription deleted"}

    assert client.delete("/subs/1").status_code == status.HTTP_404_NOT_FOUND
    assert client.put("/subs/1", json=_body()).status_code == status.HTTP_404_NOT_FOUND


def test_list_passes_typed_options(client, repo):
    client.post("/subs/add", json=_body())

    resp = client.get("/subs/list", params={"name": "yandex", "uid": UID, "limit": 5, "offset": 3, "order": "price"})
    assert resp.status_code == status.HTTP_200_OK
    assert len(resp.json()) == 1

    opts = repo.last_opts
    assert (opts.limit, opts.offset, opts.order) == (5, 3, SortColumn.PRICE)
    assert opts.filter.name == "yandex"
    assert str(opts.filter.uid) == UID


def test_list_without_filters_passes_no_filter(client, repo):
    client.get("/subs/list")
    assert repo.last_opts == ListOpts()


@pytest.mark.parametrize(
    "params",
    [{"order": "cost; DROP TABLE subscriptions"}, {"limit": "ten"}, {"offset": -1}, {"uid": "not-a-uuid"}],
)
def test_list_rejects_invalid_query(client, params):
    resp = client.get("/subs/list", params=params)
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


def test_sum_with_full_period(client, repo):
    client.post("/subs/add", json=_body(price=100))
    client.post("/subs/add", json=_body(price=250))

    resp = client.get("/subs/sum", params={"start": "01-2025", "end": "12-2025"})
    assert resp.json() == {"sum": 350}
    filter, period = repo.last_sum_args
    assert filter is None
    assert period == RangeOpts(start=date(2025, 1, 1), end=date(2025, 12, 1))


def test_sum_with_half_period_ignores_range(client, repo):
    client.post("/subs/add", json=_body())
    client.get("/subs/sum", params={"start": "01-2025", "name": "yandex"})
    filter, period = repo.last_sum_args
    assert filter == SubFilter(name="yandex")
    assert period is None


def test_sum_with_bad_period_is_bad_request(client):
    resp = client.get("/subs/sum", params={"start": "2025-01", "end": "12-2025"})
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


def test_sum_over_nothing_is_not_found(client):
    resp = client.get("/subs/sum")
    assert resp.status_code == status.HTTP_404_NOT_FOUND


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_error_body_is_documented(client):
    spec = client.get("/openapi.json").json()
    assert "ErrorResponse" in spec["components"]["schemas"]
    responses = spec["paths"]["/subs/{sub_id}"]["get"]["responses"]
    assert responses["404"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
