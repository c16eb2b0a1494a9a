"""
Shared fixtures for the SupportDesk test suite.

Every test gets a fresh in-memory store, a fixed clock and a notifier
that records events instead of sending them.
"""
import pytest

from supportdesk.bootstrap import build_services
from supportdesk.config import Settings
from supportdesk.infrastructure.memory import InMemoryStore
from supportdesk.triage.infrastructure import KeywordTicketClassifier

from tests.fixtures.support import FakeClock, RecordingNotifier


@pytest.fixture
def settings():
    """Settings for an in-memory run with no external services."""
    return Settings(
        environment="development",
        use_in_memory_store=True,
        classifier_backend="keyword",
        classifier_timeout_seconds=0.5,
        classification_confidence_threshold=0.6,
        webhook_url=None,
        sla_risk_window_hours=4,
        default_agent_max_load=10
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def classifier():
    return KeywordTicketClassifier()


@pytest.fixture
def services(settings, store, classifier, notifier, clock):
    """Fully wired services over the in-memory store."""
    return build_services(
        settings,
        store=store,
        classifier=classifier,
        notifier=notifier,
        clock=clock
    )


@pytest.fixture
def lifecycle(services):
    return services.lifecycle


@pytest.fixture
def agent_service(services):
    return services.agents
