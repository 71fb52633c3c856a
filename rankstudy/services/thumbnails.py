import re
from urllib.parse import quote, urlparse

import httpx


PROXY_ROUTE = "/proxy-image"

_DRIVE_FILE = re.compile(r"https://drive\.google\.com/file/d/([a-zA-Z0-9_-]+)")
_DRIVE_OPEN = re.compile(r"https://drive\.google\.com/open\?id=([a-zA-Z0-9_-]+)")
_DRIVE_UC = re.compile(r"https://drive\.google\.com/uc\?export=view&id=([a-zA-Z0-9_-]+)")


class ThumbnailFetchError(Exception):
    pass


def _proxy(url: str) -> str:
    return f"{PROXY_ROUTE}?url={quote(url, safe='')}"


def drive_url_to_proxy(url: str | None) -> str | None:
    """Ссылки Google Drive "поделиться" -> наш прокси с прямой ссылкой.

    Не-Drive ссылки возвращаем как есть.
    """
    if not url:
        return url

    m = _DRIVE_UC.match(url)
    if m:
        return _proxy(url)

    # для file/d/... и open?id=... отрезаем query и хвостовой слэш
    clean = url.split("?")[0].rstrip("/")
    m = _DRIVE_FILE.match(clean)
    if m:
        return _proxy(f"https://drive.google.com/uc?export=view&id={m.group(1)}")

    m = _DRIVE_OPEN.match(url)
    if m:
        return _proxy(f"https://drive.google.com/uc?export=view&id={m.group(1)}")

    return url


def is_allowed(url: str, hosts: list[str]) -> bool:
    parsed = urlparse(url)
    return parsed.scheme == "https" and parsed.hostname in set(hosts)


async def fetch_thumbnail(
    url: str,
    *,
    hosts: list[str],
    timeout: float = 15,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[bytes, str]:
    """Качает картинку; каждый редирект тоже обязан вести на разрешённый хост."""

    async def _check_host(request: httpx.Request):
        if not is_allowed(str(request.url), hosts):
            raise ThumbnailFetchError(f"redirect to disallowed host: {request.url.host}")

    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        event_hooks={"request": [_check_host]},
        transport=transport,
    ) as c:
        try:
            r = await c.get(url)
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise ThumbnailFetchError(str(e)) from e
    return r.content, r.headers.get("content-type", "image/jpeg")
