"""Edit payload accepted by ``PUT /poster/{id}``.

Only the shape crossing the boundary is checked here; richer editorial
rules belong to the editing UI.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Form(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class FormNameIdentifier(_Form):
    name_identifier: str = Field(min_length=1)
    name_identifier_scheme: Optional[str] = None
    scheme_uri: Optional[str] = Field(None, alias="schemeURI")


class FormAffiliation(_Form):
    name: str = Field(min_length=1)
    affiliation_identifier: Optional[str] = None
    affiliation_identifier_scheme: Optional[str] = None


class FormCreator(_Form):
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    name_type: Literal["Personal", "Organizational"] = "Personal"
    name_identifiers: list[FormNameIdentifier] = Field(default_factory=list)
    affiliation: list[FormAffiliation] = Field(default_factory=list)


class FormPublisher(_Form):
    name: Optional[str] = None
    publisher_identifier: Optional[str] = None
    publisher_identifier_scheme: Optional[str] = None
    scheme_uri: Optional[str] = Field(None, alias="schemeURI")


class FormTypes(_Form):
    resource_type: Optional[str] = None
    resource_type_general: str = "Other"


class FormDate(_Form):
    start: Optional[str] = None
    end: Optional[str] = None
    date_type: Optional[str] = None
    date_information: Optional[str] = None


class FormConference(_Form):
    conference_name: Optional[str] = None
    conference_location: Optional[str] = None
    conference_uri: Optional[str] = None
    conference_identifier: Optional[str] = None
    conference_identifier_type: Optional[str] = None
    conference_schema_uri: Optional[str] = None
    conference_start_date: Optional[str] = None
    conference_end_date: Optional[str] = None
    conference_acronym: Optional[str] = None
    conference_series: Optional[str] = None


class PosterForm(_Form):
    """Full replacement of a poster's editable fields."""

    title: Optional[str] = None
    description: Optional[str] = None
    creators: list[FormCreator] = Field(default_factory=list)
    titles: list[dict[str, Any]] = Field(default_factory=list)
    descriptions: list[dict[str, Any]] = Field(default_factory=list)
    identifiers: list[dict[str, Any]] = Field(default_factory=list)
    alternate_identifiers: list[dict[str, Any]] = Field(default_factory=list)
    publisher: Optional[FormPublisher] = None
    publication_year: Optional[int] = Field(None, ge=1000, le=9999)
    subjects: list[dict[str, Any]] = Field(default_factory=list)
    dates: list[FormDate] = Field(default_factory=list)
    language: Optional[str] = None
    types: Optional[FormTypes] = None
    related_identifiers: list[dict[str, Any]] = Field(default_factory=list)
    sizes: list[str] = Field(default_factory=list)
    formats: list[str] = Field(default_factory=list)
    version: Optional[str] = None
    rights_list: list[dict[str, Any]] = Field(default_factory=list)
    funding_references: list[dict[str, Any]] = Field(default_factory=list)
    ethics_approvals: list[str] = Field(default_factory=list)
    conference: Optional[FormConference] = None
    image_caption: list[dict[str, Any]] = Field(default_factory=list)
    table_caption: list[dict[str, Any]] = Field(default_factory=list)
    domain: Optional[str] = None
