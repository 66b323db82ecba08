"""Trend feeds: scraped headlines, Reddit listings, RSS and Google Trends."""

import asyncio
import json
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote, urljoin

import aiohttp
from bs4 import BeautifulSoup

from ..models.content import Trend

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

MAX_ITEMS_PER_SOURCE = 10
MIN_HEADLINE_LENGTH = 10
MAX_HEADLINE_LENGTH = 200

# Reddit posts above this score are flagged as trending
REDDIT_TRENDING_UPS = 100

LIST_NUMBER_RE = re.compile(r"^\d+\.\s+")


@dataclass(frozen=True)
class TrendSource:
    """Where to look for headlines and how to read them."""

    url: str
    platform: str
    category: str
    selector: Optional[str] = None
    type: str = "html"  # html, json or rss


DEFAULT_SOURCES = [
    TrendSource("https://techcrunch.com/category/artificial-intelligence/", "web", "AI", ".loop-card__title a"),
    TrendSource("https://www.yogajournal.com/lifestyle/parenting-2/", "yoga", "Kids Yoga", "h3.card-title a, h2.entry-title a"),
    TrendSource("https://www.mindbodygreen.com/articles/category/parenting", "wellness", "Mindful Parenting", "h2.tout__headline a"),
    TrendSource("https://www.etsy.com/search?q=mindfulness+kids+printable&order=most_relevant", "etsy", "Product Trends", "h3.v2-listing-card__title"),
    TrendSource("https://www.pinterest.com/search/pins/?q=mindful%20parenting&rs=typed", "pinterest", "Visual Inspiration", "h3[data-test-id='pinTitle']"),
    TrendSource("https://www.reddit.com/r/Parenting/hot.json", "reddit", "Parent Community", type="json"),
    TrendSource("https://www.reddit.com/r/Mindfulness/hot.json", "reddit", "Mindfulness Community", type="json"),
]

# Marketplaces list what sells, so everything they surface counts as trending
ALWAYS_TRENDING_PLATFORMS = {"etsy", "pinterest"}


def clean_headline(text: str) -> Optional[str]:
    """Strip list numbering; reject headlines that are too short or too long."""
    headline = LIST_NUMBER_RE.sub("", text.strip()).strip()
    if MIN_HEADLINE_LENGTH < len(headline) < MAX_HEADLINE_LENGTH:
        return headline
    return None


def parse_html(content: str, source: TrendSource) -> List[Trend]:
    soup = BeautifulSoup(content, "html.parser")
    trends = []
    for element in soup.select(source.selector or "h2")[:MAX_ITEMS_PER_SOURCE]:
        headline = clean_headline(element.get_text())
        if not headline:
            continue
        href = element.get("href") or source.url
        trends.append(
            Trend(
                headline=headline,
                url=urljoin(source.url, href),
                platform=source.platform,
                category=source.category,
                trending=source.platform in ALWAYS_TRENDING_PLATFORMS,
            )
        )
    return trends


def parse_reddit(content: str, source: TrendSource) -> List[Trend]:
    try:
        children = json.loads(content)["data"]["children"]
    except (KeyError, ValueError, TypeError) as e:
        logger.error(f"JSON parse error for {source.url}: {e}")
        return []

    trends = []
    for child in children[:MAX_ITEMS_PER_SOURCE]:
        post = child.get("data", {})
        if not post.get("title"):
            continue
        trends.append(
            Trend(
                headline=post["title"],
                url=f"https://reddit.com{post.get('permalink', '')}",
                platform=source.platform,
                category=source.category,
                trending=post.get("ups", 0) > REDDIT_TRENDING_UPS,
            )
        )
    return trends


def rss_titles(xml_content: str) -> List[str]:
    root = ET.fromstring(xml_content)
    return [
        title.text.strip()
        for title in root.findall(".//item/title")
        if title.text and title.text.strip()
    ]


def parse_rss(content: str, source: TrendSource) -> List[Trend]:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        logger.error(f"XML parsing error for {source.url}: {e}")
        return []

    trends = []
    for item in root.findall(".//item")[:MAX_ITEMS_PER_SOURCE]:
        headline = clean_headline(item.findtext("title") or "")
        if not headline:
            continue
        trends.append(
            Trend(
                headline=headline,
                url=(item.findtext("link") or source.url).strip(),
                platform=source.platform,
                category=source.category,
            )
        )
    return trends


PARSERS = {"html": parse_html, "json": parse_reddit, "rss": parse_rss}


class TrendScanner:
    """Fetches every trend source concurrently.

    Sources are independent: one failing source is logged and skipped and
    never aborts the others.
    """

    def __init__(
        self,
        sources: Optional[List[TrendSource]] = None,
        timeout: float = 20.0,
        user_agent: str = BROWSER_USER_AGENT,
    ):
        self.sources = sources if sources is not None else list(DEFAULT_SOURCES)
        self.timeout = timeout
        self.user_agent = user_agent

    @classmethod
    def from_settings(cls, settings, sources: Optional[List[TrendSource]] = None) -> "TrendScanner":
        return cls(sources=sources, timeout=settings.trend_feed_timeout)

    async def scan(self, sources: Optional[List[TrendSource]] = None) -> List[Trend]:
        sources = sources if sources is not None else self.sources
        if not sources:
            logger.warning("No trend sources configured")
            return []

        async with aiohttp.ClientSession() as session:
            results = await asyncio.gather(
                *(self._scan_source(session, source) for source in sources),
                return_exceptions=True,
            )

        trends: List[Trend] = []
        for source, result in zip(sources, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to scrape {source.url}: {result}")
            else:
                trends.extend(result)

        logger.info(f"Scanned {len(trends)} trends from {len(sources)} sources")
        return trends

    async def _scan_source(
        self, session: aiohttp.ClientSession, source: TrendSource
    ) -> List[Trend]:
        content = await self._fetch_text(session, source.url)
        if content is None:
            return []
        parser = PARSERS.get(source.type, parse_html)
        return parser(content, source)

    async def _fetch_text(
        self, session: aiohttp.ClientSession, url: str
    ) -> Optional[str]:
        headers = {"User-Agent": self.user_agent}
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with session.get(url, headers=headers, timeout=timeout) as response:
            if response.status != 200:
                logger.error(f"Failed to fetch {url}: HTTP {response.status}")
                return None
            return await response.text()


class GoogleTrendsClient:
    """Daily trending searches and autocomplete suggestions from Google."""

    TRENDS_RSS_URL = "https://trends.google.com/trending/rss?geo={region}"
    AUTOCOMPLETE_URL = "https://suggestqueries.google.com/complete/search?client=firefox&q={query}"
    FEED_TITLE = "Daily Search Trends"

    def __init__(self, timeout: float = 20.0, user_agent: str = BROWSER_USER_AGENT):
        self.timeout = timeout
        self.user_agent = user_agent

    async def daily_trends(self, region: str = "NL") -> List[str]:
        """Trending search queries for a region; empty on failure."""
        url = self.TRENDS_RSS_URL.format(region=region)
        try:
            content = await self._get(url)
            return [t for t in rss_titles(content) if t != self.FEED_TITLE]
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Google Trends fetch failed for {region}: {e}")
        except ET.ParseError as e:
            logger.error(f"Google Trends returned invalid XML: {e}")
        return []

    async def related_queries(self, keyword: str) -> List[str]:
        """Autocomplete suggestions for a keyword; empty on failure."""
        url = self.AUTOCOMPLETE_URL.format(query=quote(keyword))
        try:
            data = json.loads(await self._get(url))
            # Response format: [query, [suggestions...]]
            return [str(s) for s in data[1]] if len(data) > 1 else []
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Autocomplete fetch failed for '{keyword}': {e}")
        except (ValueError, TypeError, IndexError) as e:
            logger.error(f"Autocomplete returned unexpected data: {e}")
        return []

    async def _get(self, url: str) -> str:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                response.raise_for_status()
                return await response.text()
