"""Tests for file filtering utilities."""

from rulegate_core.utils.code import fence_language, is_code_file, is_excluded, is_test_file, language_for

MARKERS = (".test.", ".spec.", "__tests__", "tests/", "test_", "_test.")


class TestIsCodeFile:
    def test_python_file_is_code(self):
        assert is_code_file("app/services/user.py") is True

    def test_js_file_is_code(self):
        assert is_code_file("src/components/Button.tsx") is True

    def test_image_is_not_code(self):
        assert is_code_file("assets/logo.png") is False

    def test_archive_is_not_code(self):
        assert is_code_file("dist/bundle.tar.gz") is False

    def test_lock_file_is_not_code(self):
        assert is_code_file("poetry.lock") is False

    def test_case_insensitive(self):
        assert is_code_file("image.PNG") is False


class TestLanguage:
    def test_known_extension(self):
        assert language_for("src/app.ts") == "TypeScript"
        assert fence_language("src/app.ts") == "typescript"

    def test_unknown_extension_falls_back_to_upper_ext(self):
        assert language_for("build.gradle") == "GRADLE"
        assert fence_language("build.gradle") == ""

    def test_extension_is_case_insensitive(self):
        assert language_for("Main.PY") == "Python"


class TestIsTestFile:
    def test_spec_marker(self):
        assert is_test_file("src/user.spec.ts", MARKERS) is True

    def test_tests_directory(self):
        assert is_test_file("tests/unit/helpers.py", MARKERS) is True

    def test_pytest_basename(self):
        assert is_test_file("pkg/test_models.py", MARKERS) is True

    def test_name_containing_test_is_not_a_test_file(self):
        assert is_test_file("src/latest_release.py", MARKERS) is False

    def test_regular_source(self):
        assert is_test_file("src/user.service.ts", MARKERS) is False

    def test_directory_marker_matches_whole_segment(self):
        assert is_test_file("src/contests/app.js", MARKERS) is False
        assert is_test_file("src/latest/app.js", MARKERS) is False

    def test_jest_directory(self):
        assert is_test_file("src/__tests__/app.js", MARKERS) is True

    def test_go_suffix(self):
        assert is_test_file("pkg/server_test.go", MARKERS) is True

    def test_prefix_marker_only_applies_to_basename(self):
        assert is_test_file("test_data/loader.py", MARKERS) is False

    def test_empty_path(self):
        assert is_test_file("", MARKERS) is False


class TestIsExcluded:
    def test_directory_prefix(self):
        assert is_excluded("migrations/0001_init.py", ["migrations/"]) is True

    def test_nested_directory(self):
        assert is_excluded("app/migrations/0001_init.py", ["migrations"]) is True

    def test_basename_glob(self):
        assert is_excluded("static/js/app.min.js", ["*.min.js"]) is True

    def test_full_path_glob(self):
        assert is_excluded("src/generated/api.py", ["src/generated/*.py"]) is True

    def test_no_match(self):
        assert is_excluded("src/app.py", ["migrations/", "*.min.js"]) is False

    def test_empty_patterns(self):
        assert is_excluded("src/app.py", ()) is False
