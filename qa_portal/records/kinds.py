from dataclasses import dataclass

from qa_portal.records.models import CallerContext, RecordStatus


@dataclass(frozen=True)
class RecordKind:
    """Per-kind configuration for the generic approvable attachment record.

    Attributes:
        name: Kind discriminator, also the settings prefix for its storage.
        slug: URL segment under /api.
        label: Human-readable singular used in response messages.
        table: Backing table name.
        date_column: Column holding the secondary date (event date, year...).
        date_field: Form/JSON field name for the secondary date.
        date_label: Name of the secondary date in validation messages.
        upload_requires_privilege: Reject non-privileged uploads with 403.
        auto_approve_privileged: Privileged uploads start Approved.
        download_name_from_title: Attachment name is the sanitized title.
    """

    name: str
    slug: str
    label: str
    table: str
    date_column: str
    date_field: str
    date_label: str
    upload_requires_privilege: bool = False
    auto_approve_privileged: bool = False
    download_name_from_title: bool = False

    def initial_status(self, caller: CallerContext) -> RecordStatus:
        if self.auto_approve_privileged and caller.is_privileged:
            return RecordStatus.APPROVED
        return RecordStatus.PENDING


NOTICE = RecordKind(
    name="notice",
    slug="notices",
    label="Notice",
    table="notices",
    date_column="event_date",
    date_field="eventDate",
    date_label="date",
)

SURVEY = RecordKind(
    name="survey",
    slug="surveys",
    label="Survey",
    table="surveys",
    date_column="year",
    date_field="year",
    date_label="year",
    upload_requires_privilege=True,
    auto_approve_privileged=True,
    download_name_from_title=True,
)

MINUTES = RecordKind(
    name="minutes",
    slug="minutes",
    label="Minutes",
    table="minutes_of_meeting",
    date_column="meeting_date",
    date_field="meetingDate",
    date_label="meeting date",
)

RECORD_KINDS: dict[str, RecordKind] = {
    kind.name: kind for kind in (NOTICE, SURVEY, MINUTES)
}
