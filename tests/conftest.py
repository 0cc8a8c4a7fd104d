"""Shared fixtures: a throwaway data dir and a started web app."""

import pytest
from fastapi.testclient import TestClient

from storefront.db import jsonstore
from storefront.web.main import create_app


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "data"
    jsonstore.init_db(str(d), count=500, deal_ratio=0.12, seed=7)
    return str(d)


@pytest.fixture
def client(data_dir):
    app = create_app(data_dir)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def products(data_dir):
    return jsonstore.read_products(data_dir)
