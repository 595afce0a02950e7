"""Tests for retrieving ontology sources."""

import httpx
import pytest

from vocabsearch.errors import SourceError
from vocabsearch.source import download, fetch_source, is_remote, local_path

from tests.conftest import SAMPLE_OBO

URL = "https://example.org/releases/mondo.obo"


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestLocations:
    @pytest.mark.parametrize(
        "location, remote",
        [
            ("https://example.org/hp.obo", True),
            ("http://purl.obolibrary.org/obo/hp.obo", True),
            ("file:///data/hp.obo", False),
            ("/data/hp.obo", False),
            ("hp.obo", False),
        ],
    )
    def test_is_remote(self, location, remote):
        assert is_remote(location) is remote

    def test_plain_path(self, sample_path):
        assert local_path(str(sample_path)) == sample_path

    def test_file_url(self, sample_path):
        assert local_path(sample_path.as_uri()) == sample_path

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceError, match="not found"):
            local_path(str(tmp_path / "missing.obo"))

    def test_unsupported_scheme(self):
        with pytest.raises(SourceError, match="unsupported"):
            local_path("ftp://example.org/hp.obo")


class TestDownload:
    async def test_success(self, tmp_path):
        async with client_for(lambda request: httpx.Response(200, content=SAMPLE_OBO.encode())) as client:
            path = await download(URL, tmp_path / "mondo.obo", client=client)
        assert path.read_text(encoding="utf-8") == SAMPLE_OBO

    async def test_http_error_status(self, tmp_path):
        async with client_for(lambda request: httpx.Response(404)) as client:
            with pytest.raises(SourceError, match="404"):
                await download(URL, tmp_path / "mondo.obo", client=client)

    async def test_connection_error(self, tmp_path):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(refuse) as client:
            with pytest.raises(SourceError, match="connection refused"):
                await download(URL, tmp_path / "mondo.obo", client=client)

    async def test_truncated_body(self, tmp_path):
        def short(request):
            return httpx.Response(200, headers={"Content-Length": "100000"}, content=b"format-version: 1.2\n")

        async with client_for(short) as client:
            with pytest.raises(SourceError, match="truncated"):
                await download(URL, tmp_path / "mondo.obo", client=client)

    async def test_caller_client_left_open(self, tmp_path):
        async with client_for(lambda request: httpx.Response(200, content=b"x")) as client:
            await download(URL, tmp_path / "x.obo", client=client)
            assert not client.is_closed


class TestFetchSource:
    async def test_local_source_used_in_place(self, sample_path, tmp_path):
        assert await fetch_source(str(sample_path), tmp_path / "unused") == sample_path

    async def test_remote_source_named_after_url(self, tmp_path):
        async with client_for(lambda request: httpx.Response(200, content=b"data")) as client:
            path = await fetch_source(URL, tmp_path, client=client)
        assert path == tmp_path / "mondo.obo"
        assert path.read_bytes() == b"data"
