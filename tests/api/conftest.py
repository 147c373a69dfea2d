"""Shared fixtures for API tests."""

import json

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api import dependencies as deps


@pytest.fixture
def app(test_config, mock_claude_client):
    """Create a FastAPI test app with injected dependencies."""
    def _get_config():
        return test_config

    def _service_kwargs():
        return {
            "config": test_config,
            "client": mock_claude_client,
        }

    def _get_edit_service():
        from services import EditService
        return EditService(**_service_kwargs())

    def _get_tune_service():
        from services import TuneService
        return TuneService(**_service_kwargs())

    def _get_rewrite_service():
        from services import RewriteService
        return RewriteService(**_service_kwargs())

    application = create_app()

    # Override all dependency providers
    application.dependency_overrides[deps.get_config] = _get_config
    application.dependency_overrides[deps.get_edit_service] = _get_edit_service
    application.dependency_overrides[deps.get_tune_service] = _get_tune_service
    application.dependency_overrides[deps.get_rewrite_service] = _get_rewrite_service

    return application


@pytest.fixture
def client(app):
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
def resume_json(sample_resume):
    """The sample document as it arrives over the wire."""
    return sample_resume.model_dump(by_alias=True, mode="json")


@pytest.fixture
def profiles_json(sample_profiles):
    return [p.model_dump(by_alias=True, mode="json") for p in sample_profiles]


@pytest.fixture
def parse_events():
    """Split a server-sent event body into (event, data) pairs."""

    def parse(body: str) -> list[tuple[str, dict]]:
        events = []
        for frame in body.strip().split("\n\n"):
            fields = dict(line.split(": ", 1) for line in frame.splitlines())
            events.append((fields["event"], json.loads(fields["data"])))
        return events

    return parse
