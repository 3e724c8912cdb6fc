"""Pytest configuration and shared fixtures."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shared.models.entities import Base
# Import all models to ensure they are registered with Base.metadata
from shared.models.entities import *

from config import reset_settings, Settings


@pytest.fixture(scope="function")
def db_session():
    """
    Create a test database session with in-memory SQLite.

    This fixture creates a fresh database for each test function,
    ensuring test isolation.
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Keep tests independent of the developer's environment and .env file."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    """Settings with the documented defaults."""
    return Settings(_env_file=None, openai_api_key="test-key")


@pytest.fixture
def now_ms():
    """Fixed reference time: 2024-03-01 12:00:00 UTC in epoch milliseconds."""
    return 1_709_294_400_000


@pytest.fixture
def sample_course():
    """Course data with topics, generated content and review schedules."""
    from tutor.models.course import CourseData, LessonSummary, ReviewSchedule, TopicContent

    return CourseData(
        slug="signals",
        name="Signals and Systems",
        course_context="Continuous and discrete time signals, transforms and system analysis.",
        course_quick_summary="Laplace, Fourier and Z transforms.",
        topics=["Laplace Transforms", "Fourier Series"],
        nodes={
            "Laplace Transforms": TopicContent(
                overview="The Laplace transform   maps\n time-domain signals to the s-domain.",
                lessons=[LessonSummary(title="Definition", quiz_count=3), None, LessonSummary(title=" ")],
            ),
        },
        combined_text="Lecture 1.\n\nSignals   are functions of time.",
    )


@pytest.fixture
def mock_llm_service(mocker):
    """Mock LLM service for testing without API calls."""
    mock_service = mocker.Mock()
    mock_service.call.return_value = {"output_text": "{}", "reasoning": None}
    mock_service.stream_chat.return_value = iter([{"type": "done"}])
    return mock_service
