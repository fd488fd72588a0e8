"""Newsletter rendering: HTML from a Jinja2 template, printed to PDF by headless Chromium"""

import datetime
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from jinja2 import Environment, PackageLoader, select_autoescape
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from ..config import CompanyInfo, Config
from ..helpers import get_logger

DEFAULT_SOURCE = "政府公式サイト"

_environment = Environment(
    loader=PackageLoader("aimindmap", "templates"),
    autoescape=select_autoescape(["html"]),
)


class PdfRenderError(Exception):
    """Headless browser could not print the newsletter"""


def pdf_filename(date: Optional[datetime.date] = None) -> str:
    return f"newsletter-{(date or datetime.date.today()).isoformat()}.pdf"


def format_date(date: datetime.date) -> str:
    return f"{date.year}年{date.month}月{date.day}日"


def render_newsletter_html(
    title: str,
    summary: str,
    source_url: Optional[str] = None,
    company: Optional[CompanyInfo] = None,
    date: Optional[datetime.date] = None,
) -> str:
    source = urlparse(source_url).hostname if source_url else None
    return _environment.get_template("newsletter.html").render(
        title=title,
        summary=summary,
        source=source or DEFAULT_SOURCE,
        company=company or CompanyInfo(),
        date=format_date(date or datetime.date.today()),
    )


class PdfRenderer:
    """Prints newsletters to A4 PDF with Chromium"""

    def __init__(self, config: Config):
        self.config = config

        self.logger = get_logger("app.pdf", config)

    def company(self, overrides: Optional[Dict[str, Any]] = None) -> CompanyInfo:
        """Configured company info with request-supplied fields on top"""
        company = self.config.newsletter.company
        if isinstance(overrides, dict) and overrides:
            company = CompanyInfo.model_validate({**company.model_dump(), **overrides})
        return company

    def print_pdf(self, html: str) -> bytes:
        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(args=["--no-sandbox"])
                try:
                    page = browser.new_page()
                    page.set_content(html, wait_until="networkidle")
                    return page.pdf(
                        format="A4",
                        print_background=True,
                        margin={"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"},
                    )
                finally:
                    browser.close()
        except PlaywrightError as ex:
            self.logger.error("PDF generation failed: %s", ex)
            raise PdfRenderError(f"PDF生成に失敗しました: {ex}") from ex

    def render(
        self,
        title: str,
        summary: str,
        source_url: Optional[str] = None,
        company: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        if not title or not summary:
            raise ValueError("タイトルと要約が必要です")

        html = render_newsletter_html(title, summary, source_url, self.company(company))
        pdf = self.print_pdf(html)
        self.logger.info("Rendered newsletter '%s' (%d bytes)", title, len(pdf))
        return pdf
