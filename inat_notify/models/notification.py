"""Canonical notification record. Every source is normalized into this shape."""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from inat_notify.core.constants import PENDING_COMMENT_PREFIX


class Source(str, Enum):
    API_V1 = "api_v1"
    JSON = "json"
    HTML = "html"


class Category(str, Enum):
    MENTION = "mention"
    COMMENT = "comment"
    IDENTIFICATION = "identification"


class NotificationUser(BaseModel):
    """Actor who triggered the notification."""
    login: str = "unknown"
    name: str = "Unknown"
    icon_url: str | None = None


class TaxonRef(BaseModel):
    id: int | None = None
    name: str | None = None  # scientific name
    common_name: str | None = None


class ObservationDetails(BaseModel):
    """Enrichment block from /v1/observations, attached after the first render."""
    taxon: TaxonRef | None = None
    thumbnail: str | None = None
    medium_photo: str | None = None
    observer: str | None = None
    observed_on: str | None = None
    place_guess: str | None = None
    quality_grade: str | None = None
    identifications_count: int = 0


class Notification(BaseModel):
    """
    One activity event, independent of which source reported it.

    viewed is None when the source cannot tell read from unread.
    observation_id may hold a pending "comment_<id>" placeholder until enrichment resolves it.
    """
    id: str
    source: Source
    category: Category = Category.IDENTIFICATION
    viewed: bool | None = None
    created_at: datetime | None = None
    observation_id: str = ""
    observation_url: str = ""
    user: NotificationUser = Field(default_factory=NotificationUser)
    body: str | None = None
    taxon: TaxonRef | None = None
    observation: ObservationDetails | None = None
    # Original payload, kept for diagnostics only
    raw: Any = Field(default=None, exclude=True, repr=False)

    @property
    def is_pending_comment(self) -> bool:
        return self.observation_id.startswith(PENDING_COMMENT_PREFIX)
