"""Tests for repository identifier resolution."""
import pytest

from ado_core.repository_ref import (
    RepositoryRefKind,
    classify_repository_id,
    resolve_repository_id,
    split_repository_ref,
)

GUID = "a1b2c3d4-e5f6-7890-abcd-ef1234567890"


class TestResolveRepositoryId:

    def test_bare_name_is_scoped(self):
        assert resolve_repository_id("Foo", "Proj") == "Proj/Foo"

    def test_scoped_path_unchanged(self):
        assert resolve_repository_id("Proj/Foo", "X") == "Proj/Foo"

    def test_guid_unchanged(self):
        assert resolve_repository_id(GUID, "X") == GUID

    def test_uppercase_guid_unchanged(self):
        assert resolve_repository_id(GUID.upper(), "X") == GUID.upper()

    @pytest.mark.parametrize("value", [
        "a1b2c3d4-e5f6-7890-abcd-ef123456789",     # too short
        "a1b2c3d4e5f67890abcdef1234567890",        # no hyphens
        "g1b2c3d4-e5f6-7890-abcd-ef1234567890",    # not hex
    ])
    def test_near_guids_are_bare_names(self, value):
        assert resolve_repository_id(value, "Proj") == f"Proj/{value}"

    @pytest.mark.parametrize("value", ["Foo", "Proj/Foo", GUID])
    def test_result_is_never_bare(self, value):
        assert classify_repository_id(resolve_repository_id(value, "Proj")) is not RepositoryRefKind.BARE


class TestClassifyAndSplit:

    def test_separator_checked_before_guid(self):
        assert classify_repository_id(f"Proj/{GUID}") is RepositoryRefKind.SCOPED

    def test_split_scoped(self):
        assert split_repository_ref("Proj/Foo") == ("Proj", "Foo")

    def test_split_guid(self):
        assert split_repository_ref(GUID) == (None, GUID)
