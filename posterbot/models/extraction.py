"""Permissive schema for the extraction service response.

The extraction service is an external AI pipeline, so its output is
untrusted.  Every bibliographic field is optional and only the structure
(object vs. list vs. string) is enforced.  Nested objects keep any extra
keys the service sends so nothing is lost on the way to storage.

Two generations of the response format exist.  The newer one uses plural
caption keys, ``content`` and ``researchField``; the older one uses
``imageCaption``, ``tableCaption``, ``posterContent`` and ``domain``.  Both
are declared here and reconciled by :func:`prefer`.
"""

from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def prefer(current: Optional[T], legacy: Optional[T]) -> Optional[T]:
    """Return the current-format value, falling back to the legacy one."""
    return current if current is not None else legacy


class _Loose(BaseModel):
    """Nested object: typed where we read it, extra keys preserved."""

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)


class TitleEntry(_Loose):
    title: Optional[str] = None
    title_type: Optional[str] = None


class DescriptionEntry(_Loose):
    description: Optional[str] = None
    description_type: Optional[str] = None


class NameIdentifier(_Loose):
    name_identifier: Optional[str] = None
    name_identifier_scheme: Optional[str] = None
    scheme_uri: Optional[str] = Field(None, alias="schemeURI")


class Affiliation(_Loose):
    name: Optional[str] = None
    affiliation_identifier: Optional[str] = None
    affiliation_identifier_scheme: Optional[str] = None
    scheme_uri: Optional[str] = Field(None, alias="schemeURI")


class Creator(_Loose):
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    name_type: Optional[str] = None
    name_identifiers: Optional[list[NameIdentifier]] = None
    affiliation: Optional[list[Union[Affiliation, str]]] = None


class Publisher(_Loose):
    name: Optional[str] = None
    publisher_identifier: Optional[str] = None
    publisher_identifier_scheme: Optional[str] = None
    scheme_uri: Optional[str] = Field(None, alias="schemeURI")


class ResourceTypes(_Loose):
    resource_type: Optional[str] = None
    resource_type_general: Optional[str] = None


class Conference(_Loose):
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


class Caption(_Loose):
    caption1: Optional[str] = None
    caption2: Optional[str] = None


class PosterContent(_Loose):
    sections: Optional[list[dict[str, Any]]] = None


class ExtractionResult(BaseModel):
    """Validated extraction service response."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    doi: Optional[str] = None
    titles: Optional[list[TitleEntry]] = None
    descriptions: Optional[list[DescriptionEntry]] = None
    creators: Optional[list[Creator]] = None
    identifiers: Optional[list[dict[str, Any]]] = None
    alternate_identifiers: Optional[list[dict[str, Any]]] = None
    publisher: Optional[Publisher] = None
    publication_year: Optional[int] = None
    subjects: Optional[list[dict[str, Any]]] = None
    dates: Optional[list[dict[str, Any]]] = None
    language: Optional[str] = None
    types: Optional[ResourceTypes] = None
    related_identifiers: Optional[list[dict[str, Any]]] = None
    sizes: Optional[list[str]] = None
    formats: Optional[list[str]] = None
    version: Optional[str] = None
    rights_list: Optional[list[dict[str, Any]]] = None
    funding_references: Optional[list[dict[str, Any]]] = None
    ethics_approvals: Optional[list[str]] = None
    conference: Optional[Conference] = None

    # Current and legacy spellings of the same field.
    image_captions: Optional[list[Caption]] = None
    image_caption: Optional[list[Caption]] = None
    table_captions: Optional[list[Caption]] = None
    table_caption: Optional[list[Caption]] = None
    content: Optional[Union[PosterContent, list[dict[str, Any]]]] = None
    poster_content: Optional[Union[PosterContent, list[dict[str, Any]]]] = None
    research_field: Optional[str] = None
    domain: Optional[str] = None

    @property
    def merged_image_captions(self) -> list[Caption]:
        return prefer(self.image_captions, self.image_caption) or []

    @property
    def merged_table_captions(self) -> list[Caption]:
        return prefer(self.table_captions, self.table_caption) or []

    @property
    def merged_content_sections(self) -> list[dict[str, Any]]:
        content = prefer(self.content, self.poster_content)
        if content is None:
            return []
        if isinstance(content, list):
            return content
        return content.sections or []

    @property
    def merged_domain(self) -> Optional[str]:
        return prefer(self.research_field, self.domain)
