"""
Tests for build options and their file loading.
"""
import json

import pytest

from pageforge.config import BuildOptions, build_options_from_dict, load_build_options
from pageforge.exceptions import ConfigError


class TestBuildOptions:
    """Tests for the BuildOptions model."""

    def test_defaults(self):
        """Unconfigured builds are incremental with `index` units."""
        options = BuildOptions()
        assert options.base_unit_name == "index"
        assert options.incremental is True
        assert options.force_rebuild is False
        assert options.pagination_separator == "of"
        assert options.hash_prefix_length == 8
        assert options.page_config == {}

    def test_base_name_is_stripped(self):
        """Surrounding whitespace is removed from the base name."""
        assert BuildOptions(base_unit_name="  survey ").base_unit_name == "survey"

    @pytest.mark.parametrize("name", ["", "   ", "out/index", "out\\index"])
    def test_invalid_base_names(self, name):
        """Empty names and path separators are rejected."""
        with pytest.raises(ConfigError):
            build_options_from_dict({"base_unit_name": name})

    def test_prefix_length_range(self):
        """Reference prefixes stay between 4 and 64 characters."""
        with pytest.raises(ConfigError) as exc_info:
            build_options_from_dict({"hash_prefix_length": 2})
        assert exc_info.value.details["errors"][0]["loc"] == ("hash_prefix_length",)

    def test_unknown_fields_rejected(self):
        """Misspelled options fail instead of being ignored."""
        with pytest.raises(ConfigError):
            build_options_from_dict({"force_rebuilds": True})

    def test_none_and_non_mapping(self):
        """None yields defaults; other non-mappings are errors."""
        assert build_options_from_dict(None) == BuildOptions()
        with pytest.raises(ConfigError):
            build_options_from_dict(["index"])


class TestLoadBuildOptions:
    """Tests for load_build_options()."""

    def test_yaml(self, tmp_path):
        """Options load from YAML."""
        path = tmp_path / "pageforge.yaml"
        path.write_text(
            "base_unit_name: report\n"
            "force_rebuild: true\n"
            "page_config:\n"
            "  theme: dark\n"
        )
        options = load_build_options(path)
        assert options.base_unit_name == "report"
        assert options.force_rebuild is True
        assert options.page_config == {"theme": "dark"}

    def test_json(self, tmp_path):
        """Options load from JSON."""
        path = tmp_path / "pageforge.json"
        path.write_text(json.dumps({"pagination_separator": "/"}))
        assert load_build_options(path).pagination_separator == "/"

    def test_nested_build_key(self, tmp_path):
        """A top-level `build` mapping holds the options."""
        path = tmp_path / "project.yaml"
        path.write_text("build:\n  base_unit_name: dashboard\n")
        assert load_build_options(path).base_unit_name == "dashboard"

    def test_empty_file(self, tmp_path):
        """An empty file means default options."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_build_options(path) == BuildOptions()

    def test_missing_file(self, tmp_path):
        """Unreadable files raise ConfigError with the path."""
        with pytest.raises(ConfigError) as exc_info:
            load_build_options(tmp_path / "missing.yaml")
        assert exc_info.value.details["path"].endswith("missing.yaml")

    def test_invalid_values_name_the_file(self, tmp_path):
        """Validation failures report the file they came from."""
        path = tmp_path / "bad.yaml"
        path.write_text("max_chunk_name_length: 3\n")
        with pytest.raises(ConfigError) as exc_info:
            load_build_options(path)
        assert exc_info.value.details["path"] == str(path)
        assert exc_info.value.code == "PF_CONFIG_ERROR"
