from .pdf import PdfRenderer, PdfRenderError
from .scraper import ScrapeError, ScrapeResult, Scraper
from .summarizer import Summarizer, Summary
