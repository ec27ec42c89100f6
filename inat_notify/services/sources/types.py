"""
Typed definitions for the three notification sources.

Raw payload shapes (TypedDicts) describe what each endpoint returns. The wrapper
classes (ApiV1Update, SiteUpdate, HtmlLineItem) are the closed set of inputs the
normalizer accepts; nothing past the normalizer sees a raw shape.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypedDict, Union

from inat_notify.models import Category, Notification


class RawUser(TypedDict, total=False):
    id: int
    login: str
    name: str
    icon_url: str
    icon: str
    medium_url: str


class RawTaxon(TypedDict, total=False):
    id: int
    name: str
    preferred_common_name: str
    common_name: dict[str, Any]  # Rails JSON: {"name": "..."}


class RawResource(TypedDict, total=False):
    """comment or identification object nested in an update."""
    id: int
    body: str
    user: RawUser
    taxon: RawTaxon
    created_at: str


class ApiUpdatePayload(TypedDict, total=False):
    """One result from GET /v1/observations/updates."""
    id: int
    resource_type: str  # "Observation"
    resource_id: int
    notifier_type: str  # "Comment" | "Identification"
    notifier_id: int
    notification: str  # "activity"
    viewed: bool
    created_at: str
    comment: RawResource
    identification: RawResource


class SiteUpdatePayload(TypedDict, total=False):
    """One item from GET /users/new_updates.json (session cookie)."""
    id: int
    resource_type: str
    resource_id: int
    notifier_type: str
    notification: str  # "activity" | "mention"
    viewed: bool
    created_at: str
    comment: RawResource
    identification: RawResource
    notifier: dict[str, Any]  # mentions: {"user": {...}, "body": "..."}
    user: RawUser
    body: str


@dataclass
class ApiV1Update:
    payload: ApiUpdatePayload


@dataclass
class SiteUpdate:
    payload: SiteUpdatePayload


@dataclass
class HtmlLineItem:
    """One <li> from the updates page, reduced to what the scraper could extract."""
    index: int
    text: str
    target_url: str
    observation_id: str  # numeric id, or "comment_<id>" when only a comment link exists
    category: Category = Category.IDENTIFICATION
    actor_name: str | None = None
    image_src: str | None = None
    created_at: str | datetime | None = None
    html: str = ""


RawNotification = Union[ApiV1Update, SiteUpdate, HtmlLineItem]


@dataclass(frozen=True)
class FetcherCapabilities:
    """What a source can and cannot tell us. Drives which categories the controller trusts."""
    mentions: bool = False
    comments: bool = False
    identifications: bool = False
    viewed_state: bool = False
    viewed_notifications: bool = False  # can return already-read items
    pagination: bool = False
    timestamps: bool = False
    structured_data: bool = False


@dataclass
class FetchResult:
    notifications: list[Notification]
    total: int | None = None
    page: int = 1
    has_more: bool = False
    raw_response: Any = None
