"""Unit tests for classification path parsing."""

import pytest

from cc_reports.classification import parse_path


class TestParsePath:
    """Tests for parse_path."""

    def test_deep_path(self) -> None:
        parsed = parse_path("Root/Billing/Refund/Card")

        assert parsed.topic == "Billing"
        assert parsed.subtopic == "Refund/Card"

    def test_two_components(self) -> None:
        assert parse_path("Root/Billing") == ("Billing", "")

    def test_single_component(self) -> None:
        assert parse_path("Billing") == ("Billing", "")

    def test_empty_components_are_kept(self) -> None:
        parsed = parse_path("A//B")

        assert parsed.topic == ""
        assert parsed.subtopic == "B"

    def test_trailing_delimiter(self) -> None:
        assert parse_path("Root/Billing/") == ("Billing", "")

    def test_whitespace_trimmed_on_whole_subtopic_only(self) -> None:
        parsed = parse_path(" Root / Billing / Refund / Card ")

        assert parsed.topic == "Billing"
        assert parsed.subtopic == "Refund / Card"

    def test_single_component_trimmed(self) -> None:
        assert parse_path("  Billing  ") == ("Billing", "")

    @pytest.mark.parametrize(
        "path",
        ["a", " a ", "a/b", "a/ b ", "/b", "a/", ""],
    )
    def test_shallow_paths_have_no_subtopic(self, path: str) -> None:
        assert parse_path(path).subtopic == ""

    @pytest.mark.parametrize(
        "components",
        [
            ["r", "t", "s"],
            ["r", " t ", " s1 ", "s2 "],
            ["", "", "", ""],
            ["r", "t", "", "x"],
        ],
    )
    def test_subtopic_is_join_of_remaining_components(self, components: list[str]) -> None:
        parsed = parse_path("/".join(components))

        assert parsed.topic == components[1].strip()
        assert parsed.subtopic == "/".join(components[2:]).strip()
