from site_auditor.platform.utils.url_validator import normalize_url, site_origin, validate_url


class TestValidateUrl:
    def test_scheme_is_defaulted(self):
        assert validate_url("example.com") == (True, "https://example.com", "")

    def test_fragment_and_whitespace_are_dropped(self):
        assert validate_url("  https://example.com/page#top ") == (True, "https://example.com/page", "")

    def test_empty(self):
        assert validate_url("   ") == (False, "", "URL cannot be empty")

    def test_non_http_scheme(self):
        is_valid, _, error = validate_url("ftp://example.com")
        assert not is_valid
        assert "Invalid URL scheme" in error

    def test_missing_domain(self):
        is_valid, _, error = validate_url("https://")
        assert not is_valid
        assert "missing domain" in error


def test_normalize_reports_modification():
    assert normalize_url("https://example.com") == ("https://example.com", False)
    assert normalize_url("example.com") == ("https://example.com", True)


def test_site_origin_keeps_port():
    assert site_origin("http://example.com:8080/a/b?c=1") == "http://example.com:8080"
