from site_auditor.platform.exceptions import (
    RATE_LIMIT_MESSAGE,
    MalformedResponseError,
    ModelBackendError,
    RateLimitError,
    classify_model_error,
    is_rate_limit_error,
)


class TestRateLimitClassification:
    def test_markers(self):
        assert is_rate_limit_error("Gemini API Error (429): Too many requests")
        assert is_rate_limit_error("RESOURCE_EXHAUSTED: quota")
        assert is_rate_limit_error("You hit the Rate Limit for this model")
        assert not is_rate_limit_error("Gemini API Error (500): internal")
        assert not is_rate_limit_error("")

    def test_rate_limited_backend_error_becomes_rate_limit_error(self):
        error = classify_model_error(ModelBackendError("RESOURCE_EXHAUSTED", provider="gemini"), "gemini")
        assert isinstance(error, RateLimitError)
        assert isinstance(error, ModelBackendError)
        assert str(error) == RATE_LIMIT_MESSAGE
        assert error.status_code == 429

    def test_taxonomy_members_pass_through(self):
        error = MalformedResponseError("Parsed data is not an array.")
        assert classify_model_error(error, "openai") is error

    def test_foreign_exceptions_become_backend_errors(self):
        error = classify_model_error(RuntimeError("socket closed"), "openrouter")
        assert isinstance(error, ModelBackendError)
        assert error.provider == "openrouter"
        assert "socket closed" in str(error)
