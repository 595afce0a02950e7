"""Retrieve ontology sources from URLs or the local filesystem."""

from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from vocabsearch.errors import SourceError
from vocabsearch.logging import setup_logging

logger = setup_logging()

DEFAULT_TIMEOUT = 60.0


def is_remote(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


def local_path(location: str) -> Path:
    """Resolve a ``file://`` URL or plain path; the file must exist."""
    parsed = urlparse(location)
    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
    elif parsed.scheme and len(parsed.scheme) > 1:
        raise SourceError(f"unsupported source scheme {parsed.scheme!r} in {location}")
    else:
        path = Path(location)
    if not path.is_file():
        raise SourceError(f"source file not found: {path}")
    return path


async def download(
    url: str,
    target: Path,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Stream ``url`` into ``target``.

    Connection errors, non-2xx responses and bodies shorter than their
    Content-Length all raise :class:`SourceError`.
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            expected = response.headers.get("content-length")
            with open(target, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
            received = response.num_bytes_downloaded
    except httpx.HTTPError as exc:
        raise SourceError(f"download of {url} failed: {exc}") from exc
    except OSError as exc:
        raise SourceError(f"cannot write {target}: {exc}") from exc
    finally:
        if owns_client:
            await client.aclose()
    if expected is not None and expected.isdigit() and int(expected) != received:
        raise SourceError(f"download of {url} truncated: got {received} of {expected} bytes")
    logger.info({"message": "Downloaded ontology source", "url": url, "bytes": received, "path": str(target)})
    return target


async def fetch_source(
    location: str,
    directory: Path,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Path:
    """Make ``location`` available as a local file and return its path.

    Remote sources are downloaded into ``directory``; local ones are used
    in place.
    """
    if not is_remote(location):
        return local_path(location)
    name = Path(urlparse(location).path).name or "source.obo"
    return await download(location, directory / name, client=client, timeout=timeout)
