from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from lontario.celery_app import celery_app, enqueue
from lontario.core.database import SessionLocal
from lontario.core.errors import HiringError
from lontario.dependencies.ai import get_oracle, get_profile_fetcher
from lontario.services.questions import QuestionPregenerator
from lontario.services.scoring import ScoringService


logger = logging.getLogger(__name__)


def _with_db_session() -> Session:
    return SessionLocal()


@celery_app.task(name="candidates.score_candidate", max_retries=3)
def score_candidate(candidate_id: str) -> dict:
    db = _with_db_session()
    try:
        service = ScoringService(db, oracle=get_oracle(), profile_fetcher=get_profile_fetcher())
        result = service.score_candidate(candidate_id)
    except HiringError as exc:
        logger.warning("Background scoring skipped for %s: %s", candidate_id, exc.message)
        return {"success": False, "error": exc.message}
    except Exception:  # pylint: disable=broad-except
        logger.exception("Background scoring failed for candidate %s", candidate_id)
        db.rollback()
        return {"success": False, "error": "Scoring failed"}
    finally:
        db.close()

    if result.success and not result.insufficient_data:
        enqueue(pregenerate_questions, candidate_id)
    return {"success": result.success, "score": result.score, "error": result.error}


@celery_app.task(name="candidates.pregenerate_questions", max_retries=3)
def pregenerate_questions(candidate_id: str) -> dict:
    db = _with_db_session()
    try:
        record = QuestionPregenerator(db, oracle=get_oracle()).pregenerate(candidate_id)
        return {"status": record.status, "total_questions": record.total_questions}
    except HiringError as exc:
        logger.warning("Question pregeneration failed for %s: %s", candidate_id, exc.message)
        return {"status": "failed", "error": exc.message}
    except Exception:  # pylint: disable=broad-except
        logger.exception("Question pregeneration crashed for candidate %s", candidate_id)
        db.rollback()
        return {"status": "failed", "error": "Question generation failed"}
    finally:
        db.close()
