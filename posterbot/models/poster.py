"""Poster and poster metadata data models."""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

PLACEHOLDER_TITLE = "Untitled Poster"
PLACEHOLDER_DESCRIPTION = "No description provided for this poster"
DEFAULT_DOMAIN = "Other"

# Flat storage columns that together make up the nested ``conference`` object.
CONFERENCE_FIELDS = (
    "conferenceName",
    "conferenceLocation",
    "conferenceUri",
    "conferenceIdentifier",
    "conferenceIdentifierType",
    "conferenceSchemaUri",
    "conferenceStartDate",
    "conferenceEndDate",
    "conferenceAcronym",
    "conferenceSeries",
)


@dataclass
class PosterMetadata:
    """Bibliographic record attached 1:1 to a poster.

    Stored shape: ``publisher`` and ``types`` are single-element lists
    (empty when unset) and the conference is ten flat columns.
    ``services.poster_json.build_poster_json`` produces the external shape.
    """

    creators: list[dict[str, Any]] = field(default_factory=list)
    titles: list[dict[str, Any]] = field(default_factory=list)
    descriptions: list[dict[str, Any]] = field(default_factory=list)
    image_caption: list[dict[str, Any]] = field(default_factory=list)
    poster_content: Any = field(default_factory=list)
    table_caption: list[dict[str, Any]] = field(default_factory=list)
    conference: dict[str, Optional[str]] = field(
        default_factory=lambda: {name: None for name in CONFERENCE_FIELDS}
    )
    domain: Optional[str] = DEFAULT_DOMAIN
    doi: Optional[str] = None
    identifiers: list[dict[str, Any]] = field(default_factory=list)
    alternate_identifiers: list[dict[str, Any]] = field(default_factory=list)
    publisher: list[dict[str, Any]] = field(default_factory=list)
    publication_year: Optional[int] = None
    subjects: list[dict[str, Any]] = field(default_factory=list)
    dates: list[dict[str, Any]] = field(default_factory=list)
    language: Optional[str] = None
    types: list[dict[str, Any]] = field(default_factory=list)
    related_identifiers: list[dict[str, Any]] = field(default_factory=list)
    sizes: list[str] = field(default_factory=list)
    formats: list[str] = field(default_factory=list)
    version: Optional[str] = None
    rights_list: list[dict[str, Any]] = field(default_factory=list)
    funding_references: list[dict[str, Any]] = field(default_factory=list)
    ethics_approval: list[Any] = field(default_factory=list)

    # Database fields (set after persistence)
    id: Optional[int] = None
    poster_id: Optional[int] = None

    @property
    def current_publisher(self) -> Optional[dict[str, Any]]:
        """First stored publisher; later elements are never authoritative."""
        return self.publisher[0] if self.publisher else None

    @property
    def current_types(self) -> Optional[dict[str, Any]]:
        """First stored resource type."""
        return self.types[0] if self.types else None


@dataclass
class Poster:
    """A poster owned by one user, private until published."""

    user_id: str
    title: str
    description: str
    status: Literal["draft", "published"] = "draft"
    image_url: Optional[str] = None
    metadata: Optional[PosterMetadata] = None

    # Database fields (set after persistence)
    id: Optional[int] = None
    created_at: Optional[str] = None
    published_at: Optional[str] = None

    def is_visible_to(self, user_id: Optional[str]) -> bool:
        """Drafts are visible to their owner only."""
        return self.status == "published" or self.user_id == user_id


def conference_columns(conference: Optional[dict[str, Any]]) -> dict[str, Optional[str]]:
    """Flatten a nested conference object into the ten storage columns.

    Empty strings are stored as ``None``.
    """
    conference = conference or {}
    return {name: (conference.get(name) or None) for name in CONFERENCE_FIELDS}
