"""Unit tests for the applicability gate."""

import pytest

from tmplconv.converter import is_applicable


class TestIsApplicable:
    @pytest.mark.parametrize("path", [".drone.yml", ".drone.yaml", "ci/pipeline.yml"])
    def test_yaml_with_template_kind(self, path: str) -> None:
        assert is_applicable(path, "kind: template\nload: a.star\n")

    @pytest.mark.parametrize("path", [".drone.star", ".drone.jsonnet", ".drone", "drone.yml.bak"])
    def test_other_extensions(self, path: str) -> None:
        assert not is_applicable(path, "kind: template\nload: a.star\n")

    def test_template_after_pipeline(self) -> None:
        data = "kind: pipeline\nname: a\n---\nkind: template\nload: b.star\n"

        assert is_applicable(".drone.yml", data)

    @pytest.mark.parametrize(
        "data",
        [
            "kind: pipeline\n",
            "  kind: template\n",
            "kind: templates\n",
            "kind:template\n",
            "# kind: template\n",
            "",
        ],
    )
    def test_no_template_line(self, data: str) -> None:
        assert not is_applicable(".drone.yml", data)

    def test_trailing_whitespace_and_crlf(self) -> None:
        assert is_applicable(".drone.yml", "kind:\ttemplate  \r\nload: a.star\r\n")
