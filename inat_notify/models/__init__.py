from inat_notify.models.notification import (
    Category,
    Notification,
    NotificationUser,
    ObservationDetails,
    Source,
    TaxonRef,
)

__all__ = [
    "Category",
    "Notification",
    "NotificationUser",
    "ObservationDetails",
    "Source",
    "TaxonRef",
]
