"""
HTML source: scrapes GET /users/new_updates (the dropdown fragment the site renders).

Each <li> is one update. Extraction is best-effort: target link first (observation,
else comment), actor from a profile link, else from text patterns, date from three
text patterns. Items without a target link are dropped. Read state is not visible
in the markup, so viewed is always unknown.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from html.parser import HTMLParser

from inat_notify.core.constants import (
    COMMENT_ID_IN_URL,
    OBSERVATION_ID_IN_URL,
    PENDING_COMMENT_PREFIX,
    SITE_UPDATES_PARAMS,
)
from inat_notify.models import Category
from inat_notify.services.inat import CredentialProvider, INatClient
from inat_notify.services.normalize import RELATIVE_TIME, normalize_many, parse_timestamp
from inat_notify.services.sources.types import FetcherCapabilities, FetchResult, HtmlLineItem

logger = logging.getLogger(__name__)

# Actor name sits right before the action verb: "alice mentioned you", "bob added an ID"
ACTOR_PATTERNS = [
    re.compile(r"([A-Za-z0-9_-]+)\s+mentioned you", re.IGNORECASE),
    re.compile(r"([A-Za-z0-9_-]+)\s+added (?:a )?comment", re.IGNORECASE),
    re.compile(r"([A-Za-z0-9_-]+)\s+added an? (?:ID|identification)", re.IGNORECASE),
    re.compile(r"([A-Za-z0-9_-]+)\s+commented", re.IGNORECASE),
]
CLOCK_TIME = re.compile(r"\b(\d{1,2}):(\d{2})\s*([AP])\.?M\b", re.IGNORECASE)
MONTH_DAY = re.compile(
    r"\b(Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?"
    r"|Sep(?:t|tember)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)\.?\s+(\d{1,2})\b",
    re.IGNORECASE,
)
MONTHS = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]
PROFILE_PATHS = ("/people/", "/users/")


@dataclass
class _RawItem:
    list_depth: int
    text_parts: list[str] = field(default_factory=list)
    links: list[tuple[str, str]] = field(default_factory=list)  # (href, link text)
    image_src: str | None = None
    html_parts: list[str] = field(default_factory=list)


class _LineItemParser(HTMLParser):
    """Collects every <li> (nested ones included) with its text, links and first image."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.items: list[_RawItem] = []
        self._open: list[_RawItem] = []
        self._anchors: list[tuple[str, list[str]]] = []
        self._list_depth = 0

    def _close_items_from(self, depth: int) -> None:
        while self._open and self._open[-1].list_depth >= depth:
            self._open.pop()

    def handle_starttag(self, tag, attrs):
        a = dict(attrs)
        if tag in ("ul", "ol"):
            self._list_depth += 1
        elif tag == "li":
            # An unclosed <li> ends where its next sibling starts
            self._close_items_from(self._list_depth)
            item = _RawItem(list_depth=self._list_depth)
            self._open.append(item)
            self.items.append(item)
        elif tag == "a":
            self._anchors.append((a.get("href") or "", []))
        elif tag == "img" and a.get("src"):
            for it in self._open:
                if it.image_src is None:
                    it.image_src = a["src"]
        raw = self.get_starttag_text() or ""
        for it in self._open:
            it.html_parts.append(raw)

    def handle_endtag(self, tag):
        for it in self._open:
            it.html_parts.append(f"</{tag}>")
        if tag == "a" and self._anchors:
            href, parts = self._anchors.pop()
            text = " ".join("".join(parts).split())
            for it in self._open:
                it.links.append((href, text))
        elif tag == "li":
            if self._open:
                self._open.pop()
        elif tag in ("ul", "ol"):
            self._close_items_from(self._list_depth)
            self._list_depth = max(0, self._list_depth - 1)

    def handle_data(self, data):
        for it in self._open:
            it.text_parts.append(data)
            it.html_parts.append(data)
        for _, parts in self._anchors:
            parts.append(data)


def _target(links: list[tuple[str, str]]) -> tuple[str, str] | None:
    """(url, observation_id) from the first observation link, else the first comment link."""
    fallback: tuple[str, str] | None = None
    for href, _ in links:
        m = OBSERVATION_ID_IN_URL.search(href)
        if m:
            return href, m.group(1)
        m = COMMENT_ID_IN_URL.search(href)
        if m and fallback is None:
            fallback = (href, PENDING_COMMENT_PREFIX + m.group(1))
    return fallback


def _category(text: str) -> Category:
    lower = text.lower()
    if "mentioned you" in lower:
        return Category.MENTION
    if "comment" in lower:
        return Category.COMMENT
    return Category.IDENTIFICATION


def _actor(links: list[tuple[str, str]], text: str) -> str | None:
    for path in PROFILE_PATHS:
        for href, link_text in links:
            if path in href and link_text:
                return link_text
    for pattern in ACTOR_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1)
    return None


def extract_created_at(text: str, now: datetime | None = None) -> datetime | None:
    """
    Date from item text, first match wins:
    "<N> <unit> ago", "HH:MM AM/PM" (assumed today), "Mon D" (assumed this year).
    """
    now = now or datetime.now().astimezone()
    m = RELATIVE_TIME.search(text)
    if m:
        return parse_timestamp(m.group(0), now=now)
    m = CLOCK_TIME.search(text)
    if m:
        hour, minute = int(m.group(1)), int(m.group(2))
        if 1 <= hour <= 12 and minute < 60:
            hour = hour % 12 + (12 if m.group(3).upper() == "P" else 0)
            return now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    m = MONTH_DAY.search(text)
    if m:
        try:
            return now.replace(
                month=MONTHS.index(m.group(1)[:3].lower()) + 1,
                day=int(m.group(2)),
                hour=0,
                minute=0,
                second=0,
                microsecond=0,
            )
        except ValueError:
            return None
    return None


def _line_item(raw: _RawItem, index: int, now: datetime | None) -> HtmlLineItem | None:
    text = " ".join("".join(raw.text_parts).split())
    if not text:
        return None
    target = _target(raw.links)
    if target is None:
        logger.debug("HTML item %s has no observation/comment link; dropped", index)
        return None
    actor = _actor(raw.links, text)
    if actor is None:
        logger.debug("Could not extract user from: %s", text[:150])
    return HtmlLineItem(
        index=index,
        text=text,
        target_url=target[0],
        observation_id=target[1],
        category=_category(text),
        actor_name=actor,
        image_src=raw.image_src,
        created_at=extract_created_at(text, now),
        html="".join(raw.html_parts),
    )


def parse_line_items(html: str, now: datetime | None = None) -> list[HtmlLineItem]:
    """Every usable <li> in document order. A malformed item is skipped, never fatal."""
    parser = _LineItemParser()
    parser.feed(html or "")
    parser.close()
    items: list[HtmlLineItem] = []
    for index, raw in enumerate(parser.items):
        try:
            item = _line_item(raw, index, now)
        except (ValueError, TypeError, IndexError) as e:
            logger.warning("HTML item %s failed to parse: %s", index, e)
            continue
        if item is not None:
            items.append(item)
    return items


class HtmlFetcher:
    name = "html"
    # Only source that falls back to already-read items; cannot tell read from unread
    capabilities = FetcherCapabilities(
        mentions=True,
        comments=True,
        identifications=True,
        viewed_state=False,
        viewed_notifications=True,
        pagination=False,
        timestamps=False,
        structured_data=False,
    )

    def __init__(self, client: INatClient, credentials: CredentialProvider) -> None:
        self._client = client
        self._credentials = credentials

    async def fetch(self, page: int = 1, per_page: int | None = None) -> FetchResult:
        """page and per_page are ignored; the page has no pagination."""
        resp = await self._client.site(
            "/users/new_updates",
            source=self.name,
            session_headers=self._credentials.session_headers(),
            params=SITE_UPDATES_PARAMS,
            headers={"Accept": "text/html", "X-Requested-With": "XMLHttpRequest"},
            redirect_means_logged_out=True,
        )
        html = resp.text
        notifications = normalize_many(parse_line_items(html), site_base_url=self._client.site_base_url)
        logger.info("HTML fetched %s notifications", len(notifications))
        return FetchResult(
            notifications=notifications,
            total=len(notifications),
            page=1,
            has_more=False,
            raw_response=html,
        )
