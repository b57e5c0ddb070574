"""
IPFS snippet loader.

Code snippets shown on the blog are pinned on IPFS. Public gateways are
flaky and some answer with an HTML error page and a 200 status, so each
configured gateway is tried in order until one returns real content.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx

from blog_analytics.core.errors import BadRequestError, ContentUnavailable

logger = logging.getLogger(__name__)

# CIDv0 (base58btc "Qm..."), CIDv1 base32 lower/upper, base58btc and base36 forms
CONTENT_HASH_PATTERN = re.compile(
    r"Qm[1-9A-HJ-NP-Za-km-z]{44}"
    r"|b[A-Za-z2-7]{58}"
    r"|B[A-Z2-7]{58}"
    r"|z[1-9A-HJ-NP-Za-km-z]{48}"
    r"|F[0-9A-Za-z]{50}"
)
BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


@dataclass(frozen=True)
class SnippetContent:
    hash: str
    gateway: str
    content: str

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n"))


def extract_content_hash(url_or_hash: str) -> Optional[str]:
    """Pull the first content hash out of an IPFS URL (or a bare hash)."""
    match = CONTENT_HASH_PATTERN.search(url_or_hash or "")
    return match.group(0) if match else None


def is_valid_content_hash(value: str) -> bool:
    return CONTENT_HASH_PATTERN.fullmatch(value or "") is not None


def looks_like_html(text: str) -> bool:
    stripped = text.strip()
    return stripped.startswith("<!DOCTYPE") or stripped.startswith("<html")


def decode_base64_or_plain(text: str) -> str:
    """
    Decode ``text`` if it is a base64-encoded UTF-8 document, else return it as is.

    Whitespace and one pair of surrounding quotes are ignored, and missing
    padding is restored before decoding.
    """
    if looks_like_html(text):
        return text

    cleaned = re.sub(r"\s", "", text)
    cleaned = re.sub(r"^[\"'`]", "", cleaned)
    cleaned = re.sub(r"[\"'`]$", "", cleaned)
    if not cleaned or not BASE64_PATTERN.match(cleaned):
        return text

    missing = len(cleaned) % 4
    if missing:
        cleaned += "=" * (4 - missing)

    try:
        return base64.b64decode(cleaned, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return text


def gateway_urls(content_hash: str, gateways: Sequence[str]) -> List[str]:
    return [template.format(hash=content_hash) for template in gateways]


class IpfsContentLoader:
    """Fetch snippet text from the first IPFS gateway that serves it."""

    def __init__(self, client: httpx.Client, gateways: Sequence[str]):
        self.client = client
        self.gateways = list(gateways)

    def fetch(self, content_hash: str) -> SnippetContent:
        """
        Try each gateway once, in order.

        Raises:
            BadRequestError: If ``content_hash`` is not a content hash
            ContentUnavailable: If every gateway fails or serves HTML
        """
        if not is_valid_content_hash(content_hash):
            raise BadRequestError(
                "Not a valid IPFS content hash", code="InvalidContentHash"
            )

        for url in gateway_urls(content_hash, self.gateways):
            try:
                response = self.client.get(url, headers={"Accept": "text/plain"})
            except httpx.HTTPError as exc:
                logger.warning(f"[IPFS] Error loading from {url}: {exc}")
                continue

            if not response.is_success:
                logger.info(f"[IPFS] {url} answered {response.status_code}, trying next gateway")
                continue

            body = response.text
            if looks_like_html(body):
                logger.info(f"[IPFS] {url} served an HTML page, trying next gateway")
                continue

            return SnippetContent(
                hash=content_hash, gateway=url, content=decode_base64_or_plain(body)
            )

        logger.error(f"[IPFS] All {len(self.gateways)} gateways failed for {content_hash}")
        raise ContentUnavailable(
            "Could not load the snippet from IPFS; try opening the IPFS URL in your browser"
        )
