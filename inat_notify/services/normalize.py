"""
Normalizer: source-specific payloads -> canonical Notification.

normalize() is total over the raw input types in services.sources.types: missing or
malformed fields degrade to None/defaults instead of failing the batch.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import httpx

from inat_notify.config import settings
from inat_notify.core.constants import UNKNOWN_LOGIN, UNKNOWN_NAME, observation_url
from inat_notify.models import Category, Notification, NotificationUser, Source, TaxonRef
from inat_notify.services.sources.types import ApiV1Update, HtmlLineItem, RawNotification, SiteUpdate

logger = logging.getLogger(__name__)

RELATIVE_TIME = re.compile(r"(\d+)\s*(second|minute|hour|day|week|month|year)s?\s*ago", re.IGNORECASE)

# Fixed unit sizes; month and year are calendar-naive
UNIT_SECONDS: dict[str, int] = {
    "second": 1,
    "minute": 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
    "month": 30 * 24 * 60 * 60,
    "year": 365 * 24 * 60 * 60,
}

# Absolute forms seen outside ISO 8601 (page dates, e.g. "Jan 26, 2025")
_ABSOLUTE_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S %z",
)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_absolute(s: str) -> datetime | None:
    iso = s[:-1] + "+00:00" if s.endswith(("Z", "z")) else s
    try:
        return _as_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass
    for fmt in _ABSOLUTE_FORMATS:
        try:
            return _as_utc(datetime.strptime(s, fmt))
        except ValueError:
            continue
    return None


def parse_timestamp(value: Any, now: datetime | None = None) -> datetime | None:
    """
    Parse an absolute or relative timestamp to an aware UTC datetime.
    Order: datetime as-is, ISO/absolute text, "<N> <unit> ago" relative to now, else None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    s = str(value).strip()
    if not s:
        return None
    parsed = _parse_absolute(s)
    if parsed is not None:
        return parsed
    m = RELATIVE_TIME.search(s)
    if m:
        amount = int(m.group(1))
        unit = m.group(2).lower()
        now = _as_utc(now) if now else datetime.now(timezone.utc)
        try:
            return now - timedelta(seconds=amount * UNIT_SECONDS[unit])
        except OverflowError:
            return None
    return None


def _dict(v: Any) -> dict[str, Any]:
    return v if isinstance(v, dict) else {}


def _str_or_none(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _int_or_none(v: Any) -> int | None:
    if isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def _user(data: dict[str, Any]) -> NotificationUser:
    login = _str_or_none(data.get("login"))
    return NotificationUser(
        login=login or UNKNOWN_LOGIN,
        name=_str_or_none(data.get("name")) or login or UNKNOWN_NAME,
        icon_url=_str_or_none(data.get("icon_url") or data.get("icon") or data.get("medium_url")),
    )


def _taxon(data: Any) -> TaxonRef | None:
    t = _dict(data)
    if not t:
        return None
    common = t.get("preferred_common_name") or _dict(t.get("common_name")).get("name")
    return TaxonRef(
        id=_int_or_none(t.get("id")),
        name=_str_or_none(t.get("name")),
        common_name=_str_or_none(common),
    )


def _observation_ref(resource_id: Any, site_base_url: str) -> tuple[str, str]:
    oid = _str_or_none(resource_id) or ""
    return oid, (observation_url(site_base_url, oid) if oid else "")


def _from_api_v1(raw: dict[str, Any], site_base_url: str) -> Notification:
    # API v1 never reports mentions: comment or identification only
    if raw.get("notifier_type") == "Comment" or raw.get("comment"):
        category = Category.COMMENT
    else:
        category = Category.IDENTIFICATION
    resource = _dict(raw.get("comment")) or _dict(raw.get("identification"))
    oid, url = _observation_ref(raw.get("resource_id"), site_base_url)
    viewed = raw.get("viewed")
    return Notification(
        id=f"api_v1_{raw.get('id')}",
        source=Source.API_V1,
        category=category,
        viewed=viewed if isinstance(viewed, bool) else None,
        created_at=parse_timestamp(raw.get("created_at")),
        observation_id=oid,
        observation_url=url,
        user=_user(_dict(resource.get("user"))),
        body=_str_or_none(resource.get("body")),
        taxon=_taxon(resource.get("taxon")),
        raw=raw,
    )


def _from_site_json(raw: dict[str, Any], site_base_url: str) -> Notification:
    if raw.get("notification") == "mention":
        category = Category.MENTION
    elif raw.get("notifier_type") == "Comment" or raw.get("comment"):
        category = Category.COMMENT
    else:
        category = Category.IDENTIFICATION
    resource = _dict(raw.get("comment")) or _dict(raw.get("identification"))
    notifier = _dict(raw.get("notifier"))
    # User can sit in several places depending on notification type
    user = _dict(resource.get("user")) or _dict(notifier.get("user")) or _dict(raw.get("user"))
    body = resource.get("body")
    if not body and category is Category.MENTION:
        body = notifier.get("body") or raw.get("body")
    oid, url = _observation_ref(raw.get("resource_id"), site_base_url)
    return Notification(
        id=f"json_{raw.get('id')}",
        source=Source.JSON,
        category=category,
        # Endpoint only returns unread items; missing flag means unread
        viewed=raw.get("viewed") is True,
        created_at=parse_timestamp(raw.get("created_at")),
        observation_id=oid,
        observation_url=url,
        user=_user(user),
        body=_str_or_none(body),
        taxon=_taxon(resource.get("taxon")),
        raw=raw,
    )


def _from_html(item: HtmlLineItem, site_base_url: str) -> Notification:
    name = item.actor_name or UNKNOWN_NAME
    # Hrefs may be relative, protocol-relative or absolute
    url = str(httpx.URL(f"{site_base_url}/").join(item.target_url)) if item.target_url else ""
    return Notification(
        id=f"html_{item.index}_{item.observation_id}",
        source=Source.HTML,
        category=item.category,
        viewed=None,
        created_at=parse_timestamp(item.created_at),
        observation_id=item.observation_id,
        observation_url=url,
        user=NotificationUser(
            login=re.sub(r"\s+", "", name).lower() or UNKNOWN_LOGIN,
            name=name,
            icon_url=item.image_src,
        ),
        # Full item text is the only body the page gives us
        body=item.text or None,
        taxon=None,
        raw={"html": item.html, "text": item.text},
    )


def _fallback(raw: RawNotification, source: Source) -> Notification:
    ident = getattr(raw, "index", None)
    if ident is None:
        ident = _dict(getattr(raw, "payload", None)).get("id")
    return Notification(id=f"{source.value}_{ident}", source=source, raw=raw)


def normalize(raw: RawNotification, *, site_base_url: str | None = None) -> Notification:
    """Convert one raw source item to a Notification. Never raises for bad payload content."""
    base = (site_base_url or settings.site_base_url).rstrip("/")
    if isinstance(raw, ApiV1Update):
        source, convert = Source.API_V1, lambda: _from_api_v1(_dict(raw.payload), base)
    elif isinstance(raw, SiteUpdate):
        source, convert = Source.JSON, lambda: _from_site_json(_dict(raw.payload), base)
    elif isinstance(raw, HtmlLineItem):
        source, convert = Source.HTML, lambda: _from_html(raw, base)
    else:
        raise TypeError(f"Unsupported raw notification type: {type(raw).__name__}")
    try:
        return convert()
    except Exception as e:
        logger.debug("Normalize fell back to minimal %s record: %s", source.value, e)
        return _fallback(raw, source)


def normalize_many(raws: Iterable[RawNotification], *, site_base_url: str | None = None) -> list[Notification]:
    return [normalize(r, site_base_url=site_base_url) for r in raws]
