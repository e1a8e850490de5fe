import pytest
from fastapi.testclient import TestClient

from costguard.cloud.main import create_app

PAYMENT_URL = "https://pay.example.test/checkout"

SAMPLE_WORKFLOW = """
name: CI
on: [push, pull_request]
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - run: npm ci
      - run: npm test
  windows:
    runs-on: windows-latest
    steps:
      - uses: actions/checkout@v4
      - run: npm test
"""


@pytest.fixture()
def sample_workflow():
    return SAMPLE_WORKFLOW


@pytest.fixture()
def make_client(tmp_path):
    """Build TestClients against a throwaway sqlite database."""
    clients = []

    def _make(**kwargs):
        kwargs.setdefault("database_url", f"sqlite+aiosqlite:///{tmp_path / 'costguard.db'}")
        kwargs.setdefault("payment_url", PAYMENT_URL)
        kwargs.setdefault("price_usd", 19.0)
        client = TestClient(create_app(**kwargs))
        client.__enter__()  # runs startup, creates tables
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client):
    return make_client()


@pytest.fixture()
def payment_url():
    return PAYMENT_URL
