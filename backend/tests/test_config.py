"""
DevServe — Settings Validation Tests
======================================

What we test:
    ✅ Defaults match the documented limits (180 requests / 60 s)
    ✅ static_files_path resolves against cwd and may not escape it
    ✅ vendor_route normalization, vendor_map validation and JSON env parsing
    ✅ log_level validation
"""

import pytest
from pydantic import ValidationError

from devserve.config import DEFAULT_VENDOR_MAP, Settings


@pytest.fixture
def in_tmp_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("DEV", "STATIC_FILES_PATH", "VENDOR_MAP", "VENDOR_ROUTE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_defaults(in_tmp_cwd):
    settings = Settings()

    assert settings.dev is False
    assert settings.rate_limit_requests == 180
    assert settings.rate_limit_window == 60
    assert settings.vendor_route == "/"
    assert settings.vendor_map == DEFAULT_VENDOR_MAP
    assert settings.static_files_path == (in_tmp_cwd / "static").resolve()


class TestStaticFilesPath:
    def test_relative_path_resolved_against_cwd(self, in_tmp_cwd):
        settings = Settings(static_files_path="public/assets")
        assert settings.static_files_path == (in_tmp_cwd / "public" / "assets").resolve()

    def test_absolute_path_inside_cwd_allowed(self, in_tmp_cwd):
        target = in_tmp_cwd / "www"
        assert Settings(static_files_path=str(target)).static_files_path == target.resolve()

    @pytest.mark.parametrize("value", ["..", "../elsewhere", "/"])
    def test_path_outside_cwd_rejected(self, in_tmp_cwd, value):
        with pytest.raises(ValidationError, match="must stay within cwd"):
            Settings(static_files_path=value)


class TestVendorSettings:
    @pytest.mark.parametrize("value,expected", [
        ("/", "/"),
        ("", "/"),
        ("vendor", "/vendor"),
        ("/vendor/", "/vendor"),
        ("/static/vendor", "/static/vendor"),
    ])
    def test_route_normalized(self, in_tmp_cwd, value, expected):
        assert Settings(vendor_route=value).vendor_route == expected

    def test_vendor_map_from_env_json(self, in_tmp_cwd, monkeypatch):
        monkeypatch.setenv("VENDOR_MAP", '{"htmx.js": "https://unpkg.com/htmx.org/dist/htmx.js"}')

        assert Settings().vendor_map == {"htmx.js": "https://unpkg.com/htmx.org/dist/htmx.js"}

    @pytest.mark.parametrize("mapping", [
        {"dir/lib.js": "https://cdn/lib.js"},
        {"": "https://cdn/lib.js"},
        {"lib.js": "ftp://cdn/lib.js"},
    ])
    def test_invalid_vendor_map_rejected(self, in_tmp_cwd, mapping):
        with pytest.raises(ValidationError):
            Settings(vendor_map=mapping)


class TestLogLevel:
    def test_lowercase_accepted(self, in_tmp_cwd):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_rejected(self, in_tmp_cwd):
        with pytest.raises(ValidationError, match="Invalid log_level"):
            Settings(log_level="chatty")
