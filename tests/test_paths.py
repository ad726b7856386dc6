"""Tests for the pure path helpers and their driver-level wrappers."""

import pytest

from fsdriver import LocalDriver, MemoryDriver
from fsdriver.paths import (
    absolute_path,
    expand_braces,
    parent_directory,
    real_path_safety,
    relative_path,
)


class TestAbsolutePath:
    """Test absolute_path() / get_absolute_path()."""

    def test_with_scheme(self):
        """Test the scheme prefix is placed in front of the base path."""
        assert absolute_path("/base/", "x/y", "zip") == "zip:///base/x/y"

    def test_without_scheme(self):
        """Test no prefix is added when the scheme is empty."""
        assert absolute_path("/base/", "x/y") == "/base/x/y"

    def test_leading_slash_is_anchored_under_base(self):
        """Test an absolute input path still ends up under the base."""
        assert absolute_path("/base/", "/x/y") == "/base/x/y"

    def test_windows_separators(self):
        """Test backslashes are normalized before anchoring."""
        assert absolute_path("/base/", "\\x\\y") == "/base/x/y"

    def test_driver_scheme_override(self):
        """Test the per-call scheme wins over the driver's own."""
        driver = MemoryDriver()
        assert driver.get_absolute_path("/base/", "x", "zip") == "zip:///base/x"
        assert driver.get_absolute_path("/base/", "x") == "/base/x"


class TestRelativePath:
    """Test relative_path() / get_relative_path()."""

    def test_strips_base(self):
        """Test the base prefix is removed."""
        assert relative_path("/base/", "/base/x/y") == "x/y"

    def test_base_without_trailing_slash(self):
        """Test a path equal to the base minus its slash is empty."""
        assert relative_path("/base/", "/base") == ""

    def test_outside_base_unchanged(self):
        """Test paths outside the base are returned as-is."""
        assert relative_path("/base/", "/other/x") == "/other/x"

    def test_separators_fixed_first(self):
        """Test backslash paths are normalized before comparison."""
        assert relative_path("/base/", "\\base\\x") == "x"

    def test_missing_path(self):
        """Test a None path yields an empty string."""
        assert LocalDriver().get_relative_path("/base/") == ""


class TestRealPathSafety:
    """Test real_path_safety() / get_real_path_safety()."""

    def test_collapses_parent_segment(self):
        """Test '..' removes the segment before it."""
        assert real_path_safety("/a/b/../c") == "/a/c"

    def test_unchanged_without_parent_segment(self):
        """Test paths without '/../' come back untouched."""
        assert real_path_safety("/a/b") == "/a/b"
        assert real_path_safety("a/./b") == "a/./b"

    def test_drops_current_dir_segments(self):
        """Test '.' segments are dropped once collapsing kicks in."""
        assert real_path_safety("/a/./b/../c") == "/a/c"

    def test_traversal_cannot_climb(self):
        """Test a traversal payload loses every '..'."""
        result = real_path_safety("/var/www/../../../etc/passwd")
        assert ".." not in result
        assert result.endswith("etc/passwd")

    def test_does_not_need_existing_path(self, tmp_path):
        """Test collapsing works for paths that are not on disk."""
        missing = f"{tmp_path}/nope/../still-nope"
        assert LocalDriver().get_real_path_safety(missing) == f"{tmp_path}/still-nope"


class TestParentDirectory:
    """Test parent_directory() / get_parent_directory()."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("/a/b", "/a"),
            ("/a/b/", "/a"),
            ("/a", "/"),
            ("/", "/"),
            ("file.txt", "."),
            ("a//b", "a"),
        ],
    )
    def test_parent(self, path, expected):
        """Test dirname semantics across edge cases."""
        assert parent_directory(path) == expected

    def test_driver_applies_scheme(self):
        """Test the driver prefixes its scheme before taking the parent."""
        assert LocalDriver("file").get_parent_directory("/a/b") == "file:///a"
        assert LocalDriver().get_parent_directory("/a/b") == "/a"


class TestExpandBraces:
    """Test expand_braces()."""

    def test_no_braces(self):
        """Test a plain pattern expands to itself."""
        assert expand_braces("*.txt") == ["*.txt"]

    def test_alternatives_in_order(self):
        """Test alternatives are produced left to right."""
        assert expand_braces("*.{txt,csv}") == ["*.txt", "*.csv"]

    def test_nested(self):
        """Test nested groups are expanded."""
        assert expand_braces("a{b,{c,d}}e") == ["abe", "ace", "ade"]

    def test_multiple_groups(self):
        """Test several groups produce the cross product."""
        assert expand_braces("{a,b}{1,2}") == ["a1", "a2", "b1", "b2"]

    def test_unmatched_brace_is_literal(self):
        """Test an unclosed brace is kept as text."""
        assert expand_braces("{abc") == ["{abc"]
