"""Fetch a government page and pull out its main text"""

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from ..config import Config
from ..helpers import get_logger

NOISE_SELECTORS = "script, style, nav, header, footer, aside, .menu, .navigation"
CONTENT_SELECTORS = [
    "main",
    ".content",
    ".main-content",
    ".article",
    ".post",
    "#content",
    "#main",
    ".body",
    ".text",
]


class ScrapeError(Exception):
    """Scraping failed; status is the HTTP status to report"""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status


@dataclass
class ScrapeResult:
    title: str
    content: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_allowed_domain(url: str, allowed_domains: Iterable[str]) -> bool:
    hostname = (urlparse(url).hostname or "").lower()
    for domain in allowed_domains:
        domain = domain.strip().lower()
        if domain and (hostname == domain or hostname.endswith("." + domain)):
            return True
    return False


def validate_url(url: Any) -> str:
    if not url or not isinstance(url, str):
        raise ScrapeError("URLが提供されていません")
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ScrapeError("無効なURLです")
    return url.strip()


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def extract_content(html: str, min_length: int = 100) -> Dict[str, str]:
    """Title and main text of an HTML page"""
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.select(NOISE_SELECTORS):
        tag.decompose()

    title = soup.title.get_text().strip() if soup.title else ""
    if not title:
        heading = soup.find("h1")
        title = heading.get_text().strip() if heading else ""

    content = ""
    for selector in CONTENT_SELECTORS:
        elements = soup.select(selector)
        text = " ".join(element.get_text(" ") for element in elements).strip()
        if len(text) > min_length:
            content = text
            break

    if not content and soup.body:
        content = soup.body.get_text(" ")

    return {"title": title, "content": normalize_whitespace(content)}


class Scraper:
    """Scrapes pages of the configured, allowed domains"""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

        self.logger = get_logger("app.scraper", config)

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config.newsletter.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ja,en-US;q=0.7,en;q=0.3",
            "Cache-Control": "no-cache",
        }

    def scrape(self, url: Any) -> ScrapeResult:
        settings = self.config.newsletter
        url = validate_url(url)

        if not is_allowed_domain(url, settings.allowed_domains):
            self.logger.info("Rejected %s, allowed domains: %s", url, settings.allowed_domains)
            raise ScrapeError(
                "許可されていないドメインです。政府公式サイトのみ対応しています。", status=403
            )

        try:
            response = self.session.get(url, headers=self.headers, timeout=settings.timeout)
            response.raise_for_status()
        except requests.RequestException as ex:
            self.logger.error("Fetching %s failed: %s", url, ex)
            raise ScrapeError("ページの取得に失敗しました", status=502) from ex

        if response.encoding is None or response.encoding.lower() == "iso-8859-1":
            response.encoding = response.apparent_encoding

        extracted = extract_content(response.text, settings.min_content_length)
        if len(extracted["content"]) < settings.min_content_length:
            raise ScrapeError("コンテンツが短すぎます。有効なページかどうか確認してください。")

        self.logger.info("Scraped %s (%d chars)", url, len(extracted["content"]))
        return ScrapeResult(
            title=extracted["title"],
            content=extracted["content"][: settings.max_content_length],
            url=url,
        )
