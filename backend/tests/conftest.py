import os
from datetime import timedelta

# Settings are read at import time; point everything at local, offline defaults first.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("ENABLE_RATE_LIMITING", "false")
os.environ.setdefault("CELERY_BROKER_URL", "")

import importlib

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lontario.core.base import Base
from lontario.core import config as app_config
from lontario.core.clock import utcnow

# Import models so they register with SQLAlchemy metadata.
from lontario.models.job import Job
from lontario.models.candidate import Candidate
from lontario.models.candidate_activity import CandidateActivity  # noqa: F401
from lontario.models.ai_interview import AIInterview, InterviewStatus
from lontario.models.pregenerated_questions import PregeneratedQuestions, PregenerationStatus

from lontario.core.database import get_db
from lontario.dependencies.ai import get_notifier, get_oracle, get_profile_fetcher
from lontario.schemas.ai import (
    InterviewQuestion,
    MatchScore,
    QuestionSet,
    RubricItem,
    ScoreBreakdown,
    SkillsAnalysis,
)
from lontario.services.email import EmailDeliveryError
from lontario.services.github import GitHubProfile
from lontario.services.notifications import Notifier


# ----------------------------
# Fakes
# ----------------------------


def make_match_score(score: int = 82, **overrides) -> MatchScore:
    data = dict(
        overall_score=score,
        breakdown=ScoreBreakdown(skills_match=85, experience_match=80, education_match=70, keywords_match=75),
        skills_analysis=SkillsAnalysis(matched=["Python", "FastAPI"], missing=["Kubernetes"], bonus=["Docker"]),
        summary="Solid backend engineer with relevant API experience.",
        strengths=["Python depth", "API design"],
        concerns=["Limited Kubernetes exposure"],
        recommendation="yes",
        reasoning="Most required skills are present.",
    )
    data.update(overrides)
    return MatchScore(**data)


def make_question_set(count: int = 8, *, job_title: str = "", candidate_name: str = "") -> QuestionSet:
    questions = [
        InterviewQuestion(
            id=f"q{i + 1}",
            category="technical" if i % 2 == 0 else "behavioral",
            difficulty="medium",
            question=f"Question number {i + 1}?",
            context="Probes a required skill.",
            scoring_rubric=[
                RubricItem(
                    aspect="Depth",
                    weight=3,
                    excellent="Clear and specific",
                    good="Mostly clear",
                    needs_work="Vague",
                )
            ],
            estimated_time=5,
        )
        for i in range(count)
    ]
    return QuestionSet(job_title=job_title, candidate_name=candidate_name, questions=questions)


class FakeOracle:
    model = "fake-model"

    def __init__(self, *, score: int = 82, question_count: int = 8):
        self.score = score
        self.question_count = question_count
        self.score_error: Exception | None = None
        self.questions_error: Exception | None = None
        self.score_calls: list = []
        self.question_calls: list = []

    def score_candidate(self, candidate, job):
        self.score_calls.append((candidate, job))
        if self.score_error is not None:
            raise self.score_error
        return make_match_score(self.score)

    def generate_questions(self, job, profile):
        self.question_calls.append((job, profile))
        if self.questions_error is not None:
            raise self.questions_error
        qs = make_question_set(self.question_count, job_title=job.title, candidate_name=profile.name)
        qs.total_estimated_time = sum(q.estimated_time for q in qs.questions)
        return qs


class FakeProfileFetcher:
    def __init__(self, profile: GitHubProfile | None = None, error: Exception | None = None):
        self.profile = profile
        self.error = error
        self.calls: list[str] = []

    def fetch_profile(self, username: str) -> GitHubProfile:
        self.calls.append(username)
        if self.error is not None:
            raise self.error
        if self.profile is None:
            raise AssertionError("no fake profile configured")
        return self.profile


class EmailRecorder:
    """Stands in for the provider send function; can be told to fail."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Exception | None = None

    def __call__(self, to, subject, text, html=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})
        return f"msg-{len(self.sent)}"

    def fail(self, message: str = "provider down"):
        self.fail_with = EmailDeliveryError(message)


# ----------------------------
# Database
# ----------------------------


@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # StaticPool keeps one in-memory DB for the whole session; reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    `settings` is process-global; restore anything a test tweaks.
    """
    keys = [
        "ENV",
        "EMAIL_ENABLED",
        "ENABLE_RATE_LIMITING",
        "AI_RATE_LIMIT",
        "CRON_SECRET",
        "OPENAI_API_KEY",
        "SCORING_MIN_TEXT_CHARS",
        "FRONTEND_BASE_URL",
        "EMAIL_PROVIDER",
        "RESEND_API_KEY",
        "FROM_EMAIL",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)
        app_config.settings.ENABLE_RATE_LIMITING = False


# ----------------------------
# Collaborators
# ----------------------------


@pytest.fixture()
def oracle():
    return FakeOracle()


@pytest.fixture()
def profile_fetcher():
    return FakeProfileFetcher()


@pytest.fixture()
def emails():
    return EmailRecorder()


@pytest.fixture()
def notifier(emails):
    return Notifier(send_fn=emails)


@pytest.fixture()
def enqueued():
    return []


# ----------------------------
# App
# ----------------------------


@pytest.fixture()
def app(db_session, oracle, notifier, profile_fetcher, enqueued, monkeypatch):
    app_config.settings.ENABLE_RATE_LIMITING = False

    # SlowAPI decorators bind at import time; reload so a rate-limit test never leaks into others.
    import lontario.routes.candidates as candidates_routes
    import lontario.routes.interviews as interviews_routes
    import lontario.main as main

    importlib.reload(candidates_routes)
    importlib.reload(interviews_routes)
    importlib.reload(main)
    fastapi_app = main.app

    monkeypatch.setattr(candidates_routes, "enqueue", lambda task, *args: enqueued.append((task.name, args)))

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_oracle] = lambda: oracle
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    fastapi_app.dependency_overrides[get_profile_fetcher] = lambda: profile_fetcher
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


# ----------------------------
# Data factories
# ----------------------------


@pytest.fixture()
def make_job(db_session):
    def _make_job(**kwargs) -> Job:
        data = dict(
            title="Backend Engineer",
            department="Engineering",
            level="senior",
            location="Remote",
            employment_type="full-time",
            description="Build APIs in Python.",
            required_skills=["Python", "FastAPI", "Kubernetes"],
            nice_to_have_skills=["Docker"],
            status="active",
        )
        data.update(kwargs)
        job = Job(**data)
        db_session.add(job)
        db_session.commit()
        db_session.refresh(job)
        return job

    return _make_job


@pytest.fixture()
def make_candidate(db_session):
    counter = {"n": 0}

    def _make_candidate(job: Job, **kwargs) -> Candidate:
        counter["n"] += 1
        now = utcnow()
        data = dict(
            job_id=job.id,
            full_name=f"Candidate {counter['n']}",
            email=f"candidate{counter['n']}@example.com",
            stage="applied",
            applied_at=now,
            last_activity_at=now,
        )
        data.update(kwargs)
        candidate = Candidate(**data)
        db_session.add(candidate)
        db_session.commit()
        db_session.refresh(candidate)
        return candidate

    return _make_candidate


@pytest.fixture()
def make_interview(db_session):
    counter = {"n": 0}

    def _make_interview(candidate: Candidate, **kwargs) -> AIInterview:
        counter["n"] += 1
        scheduled_at = kwargs.pop("scheduled_at", utcnow() + timedelta(days=2))
        data = dict(
            candidate_id=candidate.id,
            job_id=candidate.job_id,
            status=InterviewStatus.scheduled.value,
            scheduled_at=scheduled_at,
            expires_at=scheduled_at + timedelta(hours=24),
            access_token=f"token-{counter['n']}",
            interview_link=f"http://localhost:3000/interview/token-{counter['n']}",
            questions=[],
            total_questions=0,
        )
        data.update(kwargs)
        interview = AIInterview(**data)
        db_session.add(interview)
        db_session.commit()
        db_session.refresh(interview)
        return interview

    return _make_interview


@pytest.fixture()
def make_pregenerated(db_session):
    def _make_pregenerated(candidate: Candidate, count: int = 8, **kwargs) -> PregeneratedQuestions:
        qs = make_question_set(count)
        data = dict(
            candidate_id=candidate.id,
            job_id=candidate.job_id,
            status=PregenerationStatus.ready.value,
            questions=[q.model_dump() for q in qs.questions],
            total_questions=count,
            total_estimated_time=count * 5,
            model_used="fake-model",
            generated_at=utcnow(),
        )
        data.update(kwargs)
        record = PregeneratedQuestions(**data)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return _make_pregenerated
