"""Shared fixtures: a fake Chill Gamer server and clients wired to it."""

import pytest

from chill_gamer.models import Session
from chill_gamer.services.catalog_api import CatalogApiClient
from chill_gamer.services.errors import ErrorHandlingService

from fake_server import FakeChillGamerServer, make_api


@pytest.fixture
def server() -> FakeChillGamerServer:
    return FakeChillGamerServer()


@pytest.fixture
def api(server: FakeChillGamerServer) -> CatalogApiClient:
    return make_api(server)


@pytest.fixture
def error_service() -> ErrorHandlingService:
    return ErrorHandlingService()


@pytest.fixture
def session() -> Session:
    return Session(user_email="ana@example.com", display_name="Ana")


@pytest.fixture
def anonymous() -> Session:
    return Session()
