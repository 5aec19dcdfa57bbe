"""Tests for the MyRentACar adapter session handling."""

from __future__ import annotations

import pytest

from fleetsync.exceptions import SourceAuthError
from fleetsync.sources.myrentcar import MyRentCarClient
from tests.conftest import (
    MYRENTCAR_BASE,
    MYRENTCAR_CREDENTIALS,
    MyRentCarStub,
    myrentcar_vehicle,
    route,
)


def _client(stub: MyRentCarStub, batch_size: int = 2) -> MyRentCarClient:
    return MyRentCarClient(
        MYRENTCAR_CREDENTIALS,
        MYRENTCAR_BASE,
        batch_size=batch_size,
        transport=route(myrentcar=stub),
    )


class TestLogin:
    async def test_keeps_first_cookie_pair(self, myrentcar_stub: MyRentCarStub) -> None:
        client = _client(myrentcar_stub)
        cookie = await client.login()
        assert cookie == "ASP.NET_SessionId=session1"
        assert client.session_cookie == cookie

    async def test_refused_login(self, myrentcar_stub: MyRentCarStub) -> None:
        myrentcar_stub.refuse_login = True
        with pytest.raises(SourceAuthError):
            await _client(myrentcar_stub).login()

    async def test_login_without_credentials(self) -> None:
        with pytest.raises(SourceAuthError):
            await MyRentCarClient(None, MYRENTCAR_BASE).login()


class TestFetch:
    async def test_batches_detail_requests(self, myrentcar_stub: MyRentCarStub) -> None:
        myrentcar_stub.vehicles = [
            myrentcar_vehicle(i, f"TR{i:03d}", f"AA-{i:03d}-AA") for i in range(1, 6)
        ]
        details = await _client(myrentcar_stub).fetch_all_vehicle_details()
        assert [d.id for d in details] == [1, 2, 3, 4, 5]
        detail_requests = [
            r for r in myrentcar_stub.requests if r.url.path.endswith("GetVehiculesDetail")
        ]
        assert [r.url.params.get_list("ids") for r in detail_requests] == [
            ["1", "2"],
            ["3", "4"],
            ["5"],
        ]
        assert myrentcar_stub.logins == 1

    async def test_relogin_once_on_expired_session(self, myrentcar_stub: MyRentCarStub) -> None:
        myrentcar_stub.vehicles = [myrentcar_vehicle(1, "TR001", "AA-001-AA")]
        client = _client(myrentcar_stub)
        await client.login()
        myrentcar_stub.expire_session()

        vehicle = await client.fetch_vehicle(1)
        assert vehicle is not None
        assert vehicle.immat1 == "AA-001-AA"
        assert myrentcar_stub.logins == 2
        assert client.session_cookie == "ASP.NET_SessionId=session2"

    async def test_second_401_raises(self, myrentcar_stub: MyRentCarStub) -> None:
        myrentcar_stub.always_unauthorized = True
        with pytest.raises(SourceAuthError):
            await _client(myrentcar_stub).fetch_vehicle_ids()
        assert myrentcar_stub.logins == 2

    async def test_disabled_without_credentials(self, myrentcar_stub: MyRentCarStub) -> None:
        client = MyRentCarClient(None, MYRENTCAR_BASE, transport=route(myrentcar=myrentcar_stub))
        assert not client.enabled
        assert await client.fetch_all_vehicle_details() == []
        assert myrentcar_stub.requests == []
