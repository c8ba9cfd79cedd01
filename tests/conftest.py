import pytest
from fastapi.testclient import TestClient

from apps.feedback_api.adapters.memory_feedback_store import InMemoryFeedbackStore
from apps.feedback_api.app import create_app
from apps.feedback_api.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        store_backend="memory",
        enable_rate_limiting=False,
        enable_request_logging=False,
    )


@pytest.fixture
def store() -> InMemoryFeedbackStore:
    return InMemoryFeedbackStore()


@pytest.fixture
def client(settings, store):
    app = create_app(settings=settings, store=store)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def valid_payload() -> dict:
    return {
        "userMessage": "How do I reset my password?",
        "botResponse": "You can reset your password by clicking the Forgot Password link on the login page.",
        "feedback": "The response was helpful",
        "rating": 5,
        "userId": "user123",
        "userName": "John Doe",
    }
