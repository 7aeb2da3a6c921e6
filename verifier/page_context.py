# verifier/page_context.py
# Titolo/descrizione della pagina inviata, usati come indizi nel prompt URL.
# Best effort: qualsiasi errore -> None, l'analisi prosegue comunque.
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122 Safari/537.36"

MAX_FIELD_CHARS = 300
MAX_REDIRECTS = 3


@dataclass
class PageContext:
    title: Optional[str] = None
    description: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not self.title and not self.description


def is_domain_allowed(url: str, allowlist: Iterable[str]) -> bool:
    allowed = [d.strip().lower() for d in allowlist if d and d.strip()]
    if not allowed:
        return True
    host = (urlparse(url).hostname or "").lower()
    return any(host == d or host.endswith("." + d) for d in allowed)


def _is_internal_address(raw: str) -> bool:
    addr = ipaddress.ip_address(raw.split("%", 1)[0])
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    return (addr.is_private or addr.is_loopback or addr.is_link_local
            or addr.is_reserved or addr.is_multicast or addr.is_unspecified)


def is_public_url(url: str) -> bool:
    """
    True solo se l'host risolve esclusivamente su indirizzi pubblici.
    Loopback, reti private, link-local (metadata cloud) e riservati -> False.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    try:
        infos = socket.getaddrinfo(parsed.hostname, parsed.port or None, proto=socket.IPPROTO_TCP)
    except (OSError, UnicodeError, ValueError) as e:
        logger.info("page context: risoluzione di %s fallita: %s", parsed.hostname, e)
        return False
    addresses = {info[4][0] for info in infos}
    if not addresses:
        return False
    return not any(_is_internal_address(a) for a in addresses)


def _get_public(url: str, timeout: float) -> Optional[requests.Response]:
    # redirect seguiti a mano: ogni hop ripassa il controllo sull'indirizzo
    for _ in range(MAX_REDIRECTS + 1):
        if not is_public_url(url):
            logger.warning("page context: %s non punta a un indirizzo pubblico, salto", url)
            return None
        r = requests.get(url, stream=True, timeout=timeout, headers={"User-Agent": UA}, allow_redirects=False)
        if not r.is_redirect:
            return r
        location = r.headers.get("Location", "")
        r.close()
        url = urljoin(url, location)
    logger.info("page context: troppi redirect, ultimo %s", url)
    return None


def _clip(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = " ".join(value.split())
    if not value:
        return None
    return value[:MAX_FIELD_CHARS]


def _meta(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = tag.get("content")
    return content if isinstance(content, str) else None


def parse_page_context(html: str) -> PageContext:
    soup = BeautifulSoup(html, "html.parser")
    title = None
    if soup.title and soup.title.string:
        title = soup.title.string
    title = title or _meta(soup, property="og:title")
    description = _meta(soup, name="description") or _meta(soup, property="og:description")
    return PageContext(title=_clip(title), description=_clip(description))


def fetch_page_context(url: str, timeout: float = 8.0, max_bytes: int = 1024 * 1024) -> Optional[PageContext]:
    try:
        response = _get_public(url, timeout)
        if response is None:
            return None
        with response as r:
            r.raise_for_status()
            ctype = (r.headers or {}).get("Content-Type", "")
            if ctype and "html" not in ctype.lower():
                logger.info("page context: %s non è HTML (%s)", url, ctype)
                return None
            buf = bytearray()
            for chunk in r.iter_content(chunk_size=65536):
                if not chunk:
                    continue
                buf.extend(chunk)
                if len(buf) >= max_bytes:
                    del buf[max_bytes:]
                    break
            encoding = r.encoding or "utf-8"
    except requests.RequestException as e:
        logger.info("page context: fetch di %s fallito: %s", url, e)
        return None

    try:
        html = bytes(buf).decode(encoding, errors="replace")
    except LookupError:
        html = bytes(buf).decode("utf-8", errors="replace")
    ctx = parse_page_context(html)
    return None if ctx.empty else ctx
