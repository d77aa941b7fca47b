"""LinkedIn content source implementation.

Strategy:
- Discover articles/posts through a Google query restricted to
  linkedin.com/pulse and linkedin.com/posts (no LinkedIn search API needed)
- Open each candidate once for author/excerpt enrichment
- Small random delays between page actions, one page at a time
- Optional li_at cookie for pages behind the LinkedIn auth wall

Architecture:
- Inherits from BaseContentSource for the standard interface
- Uses Playwright (Chromium) for browser automation
- Browser lives between __aenter__ and __aexit__ (one fetch cycle)
"""

import asyncio
import logging
import random
import re
from typing import Any, List, Optional
from urllib.parse import parse_qs, quote_plus, unquote, urlparse

from playwright.async_api import Browser, BrowserContext, Page, Response, async_playwright

from linkedin_indexer.config import get_settings
from linkedin_indexer.crawler.base import (
    BaseContentSource,
    ContentDetails,
    ContentSourceError,
    RateLimitedError,
    SearchResult,
)
from linkedin_indexer.models import ContentType
from linkedin_indexer.utils.retry import RetryConfig, call_with_retry

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.google.com/search?q={query}"

REGION_NAMES = {
    "nz": "New Zealand",
    "au": "Australia",
    "us": "United States",
    "global": "",
}

CANDIDATE_LINK_SELECTOR = 'a[href*="linkedin.com/pulse"], a[href*="linkedin.com/posts"]'

# Pages that mean "stop asking for a while"
THROTTLE_URL_MARKERS = ("google.com/sorry", "/authwall", "/checkpoint/challenge")

EXCERPT_MAX_CHARS = 500
TITLE_MAX_CHARS = 200

_EXTRACT_ARTICLE_JS = """
() => {
    const text = (el) => (el && el.textContent ? el.textContent.trim() : '');
    const authorEl = document.querySelector('[data-tracking-control-name="article-reader_author"]')
        || document.querySelector('a[href*="/in/"]');
    const body = document.querySelector('.article-content') || document.querySelector('article');
    const timeEl = document.querySelector('time[datetime]');
    const avatar = document.querySelector('img[data-tracking-control-name="article-reader_author"], .author-info img');
    return {
        title: text(document.querySelector('h1')),
        authorName: text(authorEl),
        authorProfileUrl: authorEl && authorEl.href ? authorEl.href : '',
        authorAvatarUrl: avatar && avatar.src ? avatar.src : '',
        excerpt: text(body).slice(0, 500),
        fullText: text(body),
        publishedDate: timeEl ? timeEl.getAttribute('datetime') : '',
    };
}
"""

_EXTRACT_POST_JS = """
() => {
    const text = (el) => (el && el.textContent ? el.textContent.trim() : '');
    const body = document.querySelector('.feed-shared-update-v2__description')
        || document.querySelector('[data-test-id="main-feed-activity-card__commentary"]');
    const authorEl = document.querySelector('.update-components-actor__name')
        || document.querySelector('[data-tracking-control-name="public_post_feed-actor-name"]');
    const authorLink = document.querySelector('.update-components-actor__container-link')
        || document.querySelector('a[data-tracking-control-name="public_post_feed-actor-name"]');
    const headline = document.querySelector('.update-components-actor__description');
    const count = (selector) => {
        const el = document.querySelector(selector);
        const match = el ? (el.getAttribute('aria-label') || el.textContent || '').replace(/,/g, '').match(/(\\d+)/) : null;
        return match ? parseInt(match[1], 10) : null;
    };
    const excerpt = text(body).slice(0, 500);
    return {
        title: excerpt.slice(0, 100),
        excerpt: excerpt,
        fullText: text(body),
        authorName: text(authorEl),
        authorProfileUrl: authorLink && authorLink.href ? authorLink.href : '',
        authorHeadline: text(headline),
        likes: count('[data-test-id="social-actions__reaction-count"], .social-details-social-counts__reactions-count'),
        comments: count('[data-test-id="social-actions__comments"], .social-details-social-counts__comments'),
    };
}
"""


def region_display_name(region: str) -> str:
    """Human-readable region for search queries ("nz" -> "New Zealand")."""
    if region in REGION_NAMES:
        return REGION_NAMES[region]
    configured = get_region_name_from_config(region)
    return configured if configured is not None else region


def get_region_name_from_config(region: str) -> Optional[str]:
    """Region display name from the topic configuration, if it can be read."""
    from linkedin_indexer.topics import load_topics_config

    try:
        config = load_topics_config(get_settings().fetch.topics_config_path)
    except (OSError, ValueError):
        return None
    region_config = config.regions.get(region)
    return region_config.name if region_config else None


def build_search_query(topic: str, region: str, subregion: Optional[str] = None) -> str:
    """Google query for LinkedIn articles/posts about a topic in a region.

    build_search_query("rma-reform", "nz", "wellington")
    -> '"rma reform" wellington New Zealand site:linkedin.com/pulse OR site:linkedin.com/posts'
    """
    parts = [f'"{topic.replace("-", " ")}"']
    if subregion:
        parts.append(subregion)
    region_name = region_display_name(region)
    if region_name:
        parts.append(region_name)
    parts.append("site:linkedin.com/pulse OR site:linkedin.com/posts")
    return " ".join(parts)


def clean_result_url(href: str) -> str:
    """Unwrap Google redirect links (/url?q=...) and drop tracking params."""
    if "/url?" in href:
        query = parse_qs(urlparse(href).query)
        target = query.get("q") or query.get("url")
        if target:
            href = unquote(target[0])
    return href.split("#")[0].split("?")[0]


def classify_content_type(url: str) -> ContentType:
    return ContentType.ARTICLE if "/pulse/" in url else ContentType.POST


class LinkedInSource(BaseContentSource):
    """LinkedIn content source backed by a Playwright browser.

    Usage:
        async with LinkedInSource() as source:
            results = await source.search("rma-reform", "nz", "wellington")
    """

    platform = "linkedin"

    def __init__(self):
        super().__init__()
        self.settings = get_settings()
        self.scraper_settings = self.settings.scraper

        # Browser state (initialized in __aenter__)
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

        self._retry = RetryConfig(
            max_retries=self.scraper_settings.max_retries,
            delay=self.scraper_settings.retry_delay,
            give_up_on=(RateLimitedError,),
        )

        # Strategy parameters
        self.ACTION_DELAY_MIN = 2  # seconds
        self.ACTION_DELAY_MAX = 4

        self._page_count = 0

    # =========================================================================
    # Context Manager (Browser Lifecycle)
    # =========================================================================

    async def __aenter__(self):
        """Launch the browser and prepare a context."""
        logger.info("Starting LinkedIn source browser...")

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.scraper_settings.headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )

            self._context = await self._browser.new_context(
                viewport={"width": 1920, "height": 1080},
                user_agent=self.scraper_settings.user_agent,
                locale="en-US",
            )

            # Bounded timeouts so one unresponsive page cannot stall a cycle
            self._context.set_default_timeout(self.scraper_settings.timeout_ms)
            self._context.set_default_navigation_timeout(self.scraper_settings.timeout_ms)

            await self._context.add_init_script(
                "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"
            )

            if self.scraper_settings.li_at_cookie:
                await self._context.add_cookies([{
                    "name": "li_at",
                    "value": self.scraper_settings.li_at_cookie,
                    "domain": ".linkedin.com",
                    "path": "/",
                    "httpOnly": True,
                    "secure": True,
                    "sameSite": "None",
                }])
                logger.info("Loaded LinkedIn li_at cookie from config")
        except BaseException:
            await self._close()
            raise

        logger.info("LinkedIn source browser started successfully")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Cleanup browser resources."""
        await self._close()
        logger.info(f"LinkedIn source browser closed ({self._page_count} pages opened)")

    async def _close(self):
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    # =========================================================================
    # Search
    # =========================================================================

    async def search(
        self,
        topic: str,
        region: str,
        subregion: Optional[str] = None,
    ) -> List[SearchResult]:
        """Search Google for LinkedIn articles/posts about topic in region.

        Raises:
            RateLimitedError: Google served its "unusual traffic" page
            ContentSourceError: Navigation failed after retries
        """
        query = build_search_query(topic, region, subregion)
        search_url = GOOGLE_SEARCH_URL.format(query=quote_plus(query))
        logger.info(f"Searching: {query}")

        page = await self._get_page()
        try:
            await self._goto(page, search_url)
            await self._action_delay()

            links = await page.eval_on_selector_all(
                CANDIDATE_LINK_SELECTOR,
                "anchors => anchors.map(a => ({href: a.getAttribute('href') || '', text: (a.textContent || '').trim()}))",
            )
            results = self._parse_links(links)
            logger.info(f"  Found {len(results)} candidate links for {topic}/{region}")
            return results
        finally:
            await page.close()

    def _parse_links(self, links: list[dict[str, Any]]) -> List[SearchResult]:
        results: List[SearchResult] = []
        seen: set[str] = set()

        for link in links:
            url = clean_result_url(link.get("href", ""))
            if "linkedin.com" not in url or url in seen:
                continue
            seen.add(url)
            results.append(
                SearchResult(
                    url=url,
                    title=link.get("text", "")[:TITLE_MAX_CHARS],
                    content_type=classify_content_type(url),
                )
            )
            if len(results) >= self.scraper_settings.max_results:
                break

        return results

    # =========================================================================
    # Details
    # =========================================================================

    async def fetch_details(self, url: str) -> Optional[ContentDetails]:
        """Open a content page and read author/excerpt fields.

        Returns None when the page yields nothing useful (e.g. auth wall).
        """
        page = await self._get_page()
        try:
            await self._goto(page, url)
            await self._action_delay()

            if self._is_throttled(page.url):
                logger.info(f"Detail page redirected to {page.url}, skipping enrichment")
                return None

            script = (
                _EXTRACT_ARTICLE_JS
                if classify_content_type(url) == ContentType.ARTICLE
                else _EXTRACT_POST_JS
            )
            data = await page.evaluate(script)
            details = ContentDetails.model_validate(
                {key: value for key, value in data.items() if value not in ("", None)}
            )
            if details.excerpt:
                details.excerpt = details.excerpt[:EXCERPT_MAX_CHARS]
            return details
        except RateLimitedError:
            # Enrichment is best-effort; throttling here is reported by the next search
            return None
        finally:
            await page.close()

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_page(self) -> Page:
        if not self._context:
            raise ContentSourceError("Browser not initialized. Use 'async with LinkedInSource()' pattern.")
        self._page_count += 1
        return await self._context.new_page()

    async def _goto(self, page: Page, url: str) -> Optional[Response]:
        """Navigate with retries; throttling pages raise RateLimitedError."""

        async def navigate() -> Optional[Response]:
            response = await page.goto(url, wait_until="networkidle")
            if response is not None and response.status == 429:
                raise RateLimitedError(f"HTTP 429 from {urlparse(url).netloc}")
            if self._is_throttled(page.url) and "google.com" in page.url:
                raise RateLimitedError("Google unusual traffic page")
            return response

        try:
            return await call_with_retry(self._retry, navigate)
        except RateLimitedError:
            raise
        except Exception as e:
            raise ContentSourceError(f"Navigation to {url} failed: {e}") from e

    @staticmethod
    def _is_throttled(current_url: str) -> bool:
        return any(marker in current_url for marker in THROTTLE_URL_MARKERS)

    async def _action_delay(self):
        """Short random pause after each navigation."""
        await asyncio.sleep(random.uniform(self.ACTION_DELAY_MIN, self.ACTION_DELAY_MAX))
