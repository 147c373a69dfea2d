"""Tests for system endpoints and error mapping."""

from api.app import (
    TEMPORARY_GENERATION_ERROR,
    error_content,
    error_status,
)
from services.exceptions import (
    GenerationFailedError,
    InvalidRequestError,
    JobDescriptionError,
    RewriteConstraintError,
)


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}


class TestErrorMapping:
    """Tests for error_status() and error_content()."""

    def test_status_codes(self):
        assert error_status(InvalidRequestError("bad")) == 400
        assert error_status(JobDescriptionError("no text")) == 422
        assert error_status(RewriteConstraintError([{"path": "summary"}])) == 422
        assert error_status(GenerationFailedError("Resume tuning", "schema")) == 500
        assert error_status(GenerationFailedError("Resume tuning", "503", transient=True)) == 503

    def test_provider_details_are_hidden(self):
        permanent = GenerationFailedError("Resume tuning", "Invalid API key sk-123")
        transient = GenerationFailedError("Resume tuning", "upstream 502", transient=True)
        assert error_content(permanent) == {"detail": "Resume tuning failed."}
        assert error_content(transient) == {"detail": TEMPORARY_GENERATION_ERROR}

    def test_violations_are_returned(self):
        exc = RewriteConstraintError([{"path": "summary", "charCount": 90}])
        assert error_content(exc) == {
            "detail": "Rewrite could not satisfy length limits for: summary",
            "violations": [{"path": "summary", "charCount": 90}],
        }

    def test_cors_allows_localhost(self, client):
        resp = client.options(
            "/health",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"
