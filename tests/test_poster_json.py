"""Tests for the poster JSON projection."""

from posterbot.models.poster import PosterMetadata, conference_columns
from posterbot.services.poster_json import (
    build_conference,
    build_poster_json,
    split_doi,
    strip_empty_strings,
)


def _has_empty_string_value(value) -> bool:
    if isinstance(value, dict):
        return any(v == "" or _has_empty_string_value(v) for v in value.values())
    if isinstance(value, list):
        return any(_has_empty_string_value(v) for v in value)
    return False


class TestSplitDoi:
    """Tests for DOI prefix/suffix splitting."""

    def test_splits_on_first_slash(self):
        """Only the first slash separates prefix and suffix."""
        assert split_doi("10.5281/zenodo.1234/v2") == ("10.5281", "zenodo.1234/v2")

    def test_no_slash(self):
        assert split_doi("not-a-doi") == (None, None)

    def test_missing(self):
        assert split_doi(None) == (None, None)
        assert split_doi("") == (None, None)


class TestStripEmptyStrings:
    def test_strips_nested_keys(self):
        """Empty-string values are removed at every depth."""
        value = {"a": "", "b": {"c": "", "d": "x"}, "e": [{"f": "", "g": 1}]}

        assert strip_empty_strings(value) == {"b": {"d": "x"}, "e": [{"g": 1}]}

    def test_keeps_falsy_non_strings(self):
        value = {"zero": 0, "flag": False, "none": None}

        assert strip_empty_strings(value) == value


class TestBuildConference:
    def test_omitted_when_all_empty(self):
        assert build_conference(conference_columns(None)) is None
        assert build_conference(conference_columns({"conferenceName": ""})) is None

    def test_keeps_only_set_fields(self):
        conference = conference_columns({"conferenceName": "PosterCon", "conferenceUri": None})

        assert build_conference(conference) == {"conferenceName": "PosterCon"}


class TestBuildPosterJson:
    """Tests for build_poster_json."""

    def test_doi_prefix_suffix_reconstruct(self, sample_metadata):
        """prefix + '/' + suffix gives back the stored DOI."""
        result = build_poster_json(sample_metadata)

        assert result["doi"] == sample_metadata.doi
        assert f"{result['prefix']}/{result['suffix']}" == sample_metadata.doi

    def test_unwraps_single_element_arrays(self, sample_metadata):
        """Publisher and types are stored as arrays but exported as objects."""
        result = build_poster_json(sample_metadata)

        assert result["publisher"] == {"name": "Zenodo"}
        assert result["types"] == {"resourceType": "Poster", "resourceTypeGeneral": "Text"}

    def test_first_publisher_wins(self, sample_metadata):
        sample_metadata.publisher = [{"name": "First"}, {"name": "Second"}]

        assert build_poster_json(sample_metadata)["publisher"] == {"name": "First"}

    def test_wraps_bare_content_list(self, sample_metadata):
        result = build_poster_json(sample_metadata)

        assert result["content"] == {
            "sections": [{"sectionTitle": "Intro", "sectionContent": "Hello"}]
        }

    def test_keeps_sections_object(self, sample_metadata):
        sample_metadata.poster_content = {"sections": [{"sectionTitle": "A"}]}

        assert build_poster_json(sample_metadata)["content"] == {"sections": [{"sectionTitle": "A"}]}

    def test_renames_ethics_and_domain(self, sample_metadata):
        result = build_poster_json(sample_metadata)

        assert result["ethicsApprovals"] == ["IRB-42"]
        assert result["researchField"] == "Physics"
        assert "ethicsApproval" not in result
        assert "domain" not in result

    def test_nests_conference(self, sample_metadata):
        result = build_poster_json(sample_metadata)

        assert result["conference"] == {"conferenceName": "PosterCon", "conferenceAcronym": "PC"}

    def test_omits_empty_values(self, sample_metadata):
        """Empty lists, None and empty strings never appear as keys."""
        result = build_poster_json(sample_metadata)

        assert "tableCaptions" not in result
        assert "subjects" not in result
        assert "language" not in result
        assert "version" not in result

    def test_never_contains_empty_strings(self, sample_metadata):
        sample_metadata.creators = [{"name": "A", "affiliation": [{"name": "", "schemeURI": ""}]}]
        sample_metadata.titles = [{"title": "T", "lang": ""}]

        result = build_poster_json(sample_metadata)

        assert not _has_empty_string_value(result)
        assert result["titles"] == [{"title": "T"}]

    def test_empty_metadata(self):
        """Only the default research field survives on empty metadata."""
        assert build_poster_json(PosterMetadata()) == {"researchField": "Other"}

    def test_no_doi_means_no_prefix(self, sample_metadata):
        sample_metadata.doi = None

        result = build_poster_json(sample_metadata)

        assert "doi" not in result
        assert "prefix" not in result
        assert "suffix" not in result
