"""
CLI Tests
---------
Argument parsing and the debug command against a mock server.
"""

from types import SimpleNamespace

import httpx
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from core.errors import ValidationError
from infra.credentials import InMemoryCredentialStore
from conftest import CUSTOMER_ID, MockServer, VALID_TOKEN


class TestParsing:
    """Tests for argument handling."""

    def test_parse_query(self):
        assert main.parse_query(["page=2", "q=a=b"]) == [("page", "2"), ("q", "a=b")]

    def test_parse_query_rejects_bare_key(self):
        with pytest.raises(ValueError):
            main.parse_query(["page"])

    def test_subcommands(self):
        parser = main.build_parser()

        args = parser.parse_args(["orders", "--all"])
        assert args.command == "orders" and args.all

        args = parser.parse_args(["debug", "GET", "customers/", "-q", "page=1"])
        assert args.method == "GET"
        assert args.query == ["page=1"]

    def test_recommendation_type_choices(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["recommendations", "--type", "popular"])


def debug_args(method, path=None, query=(), param=(), body=None) -> SimpleNamespace:
    return SimpleNamespace(method=method, path=path, query=list(query), param=list(param), body=body)


class TestRunDebug:
    """The debug subcommand."""

    @pytest.mark.asyncio
    async def test_catalog_endpoint_uses_customer(self, make_client):
        server = MockServer((200, {"id": 1, "uuid": CUSTOMER_ID}))

        async with make_client(server) as client:
            code = await main.run_debug(client, debug_args("customer_info"), CUSTOMER_ID)

        assert code == 0
        assert server.requests[0].url.path == f"/api/customers/{CUSTOMER_ID}/"

    @pytest.mark.asyncio
    async def test_missing_path(self, make_client):
        server = MockServer((200, {}))

        async with make_client(server) as client:
            code = await main.run_debug(client, debug_args("GET"), None)

        assert code == 2
        assert server.calls == 0

    @pytest.mark.asyncio
    async def test_failure_exit_code(self, make_client):
        server = MockServer(httpx.ConnectError("unreachable"))

        async with make_client(server) as client:
            code = await main.run_debug(client, debug_args("GET", "customers/"), None)

        assert code == 1

    @pytest.mark.asyncio
    async def test_bad_query_argument(self, make_client):
        server = MockServer((200, {}))

        async with make_client(server) as client:
            code = await main.run_debug(client, debug_args("GET", "x/", query=["oops"]), None)

        assert code == 2


class TestStoredTokenCheck:
    """A malformed token is rejected before any client is built."""

    def test_valid_or_missing_token_accepted(self):
        main.check_stored_token(InMemoryCredentialStore(token=VALID_TOKEN))
        main.check_stored_token(InMemoryCredentialStore())

    def test_malformed_token_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            main.check_stored_token(InMemoryCredentialStore(token="not a token"))
        assert exc_info.value.field_name == "token"

    @pytest.mark.asyncio
    async def test_run_command_stops_on_malformed_token(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GROCER_TOKEN", "short")
        monkeypatch.setenv("GROCER_CUSTOMER_ID", CUSTOMER_ID)

        def no_client(*args, **kwargs):
            raise AssertionError("client must not be built")

        monkeypatch.setattr(main, "ApiClient", no_client)
        args = SimpleNamespace(config=None, customer=None, command="customer")

        assert await main.run_command(args) == 1
