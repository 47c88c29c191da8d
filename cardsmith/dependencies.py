from typing import Annotated, Generator
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from cardsmith.db.interfaces.postgresql import PostgreSQLDatabase
from cardsmith.exceptions import InternalError, LLMException
from cardsmith.repositories.generation_logs import GenerationLogRepository
from cardsmith.services.drafts import DraftReviewService
from cardsmith.services.generation import CardGenerator, GenerationOrchestrator
from cardsmith.services.llm.factory import make_card_generator
from cardsmith.services.quota import QuotaTracker
from cardsmith.services.study import StudySessionManager


def get_database(request: Request) -> PostgreSQLDatabase:
    return request.app.state.database


DatabaseDep = Annotated[PostgreSQLDatabase, Depends(get_database)]


def get_db_session(database: DatabaseDep) -> Generator[Session, None, None]:
    with database.get_session() as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db_session)]


def get_current_user_id(
    x_user_id: Annotated[UUID, Header(alias="X-User-Id", description="Verified user id set by the gateway")],
) -> UUID:
    return x_user_id


CurrentUserDep = Annotated[UUID, Depends(get_current_user_id)]


def get_card_generator() -> CardGenerator:
    try:
        return make_card_generator()
    except LLMException as e:
        raise InternalError("AI service not configured") from e


def get_generation_orchestrator(
    session: SessionDep,
    generator: Annotated[CardGenerator, Depends(get_card_generator)],
) -> GenerationOrchestrator:
    return GenerationOrchestrator(session=session, generator=generator)


def get_quota_tracker(session: SessionDep) -> QuotaTracker:
    return QuotaTracker(GenerationLogRepository(session))


def get_study_manager(session: SessionDep) -> StudySessionManager:
    return StudySessionManager(session)


def get_draft_service(session: SessionDep) -> DraftReviewService:
    return DraftReviewService(session)


GenerationDep = Annotated[GenerationOrchestrator, Depends(get_generation_orchestrator)]
QuotaDep = Annotated[QuotaTracker, Depends(get_quota_tracker)]
StudyDep = Annotated[StudySessionManager, Depends(get_study_manager)]
DraftsDep = Annotated[DraftReviewService, Depends(get_draft_service)]
