from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, create_engine, func, select
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship, sessionmaker

from .models import DurableId, HouseholdCandidate, ImportedRef, ImportResult

logger = logging.getLogger(__name__)


class CommitError(RuntimeError):
    """The whole household batch failed and nothing was persisted."""


class Base(DeclarativeBase):
    pass


class Family(Base):
    __tablename__ = "families"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    family_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    people: Mapped[list[Person]] = relationship(back_populates="family")


class Person(Base):
    __tablename__ = "people"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    family_id: Mapped[int] = mapped_column(ForeignKey("families.id", ondelete="CASCADE"), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    mobile: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_main_contact_1: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=sql_text("false"))
    is_main_contact_2: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=sql_text("false"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=sql_text("true"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    family: Mapped[Family] = relationship(back_populates="people")


def create_db_engine(database_url: str) -> Engine:
    return create_engine(database_url, pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def create_session_factory(database_url: str, create_schema: bool = True) -> sessionmaker[Session]:
    engine = create_db_engine(database_url)
    if create_schema:
        init_schema(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


class ImportCommitter:
    """Persist reviewed households as families and people, all or nothing."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def existing_household_labels(self) -> List[str]:
        with self.session_factory() as db:
            return list(db.execute(select(Family.family_name)).scalars().all())

    def _insert_household(self, db: Session, household: HouseholdCandidate, result: ImportResult) -> None:
        family = Family(family_name=household.suggested_name)
        db.add(family)
        db.flush()
        result.families.append(ImportedRef(id=DurableId(family.id), name=family.family_name))

        for member in household.members:
            person = Person(
                family_id=family.id,
                first_name=member.first_name,
                last_name=member.last_name,
                email=member.email,
                mobile=member.mobile,
                is_main_contact_1=member.is_main_contact_1,
                is_main_contact_2=member.is_main_contact_2,
                is_active=True,
            )
            db.add(person)
            db.flush()
            result.individuals.append(ImportedRef(id=DurableId(person.id), name=member.display_name))

    def commit(self, households: Sequence[HouseholdCandidate]) -> ImportResult:
        if not isinstance(households, (list, tuple)) or not households:
            raise CommitError("Invalid families data: expected a non-empty list of households")

        result = ImportResult()
        db = self.session_factory()
        try:
            with db.begin():
                for household in households:
                    self._insert_household(db, household, result)
        except SQLAlchemyError as exc:
            logger.error("Household import rolled back after %d family insert(s): %s", len(result.families), exc)
            raise CommitError(f"Failed to import families: {exc}") from exc
        except Exception as exc:
            logger.error("Household import rolled back: %s", exc)
            raise CommitError(f"Failed to import families: {exc}") from exc
        finally:
            db.close()

        logger.info(
            "Household import completed: %d families, %d individuals",
            len(result.families),
            len(result.individuals),
        )
        return result


def households_from_payload(payload: Dict[str, Any], confirmed_only: bool = False) -> List[HouseholdCandidate]:
    families = payload.get("families") if isinstance(payload, dict) else None
    if not isinstance(families, list):
        raise CommitError("Invalid families data: payload must contain a 'families' list")
    households = [HouseholdCandidate.from_mapping(item) for item in families]
    if confirmed_only:
        households = [household for household in households if household.confirmed]
    return households


def commit_review_payload(
    payload: Dict[str, Any], committer: ImportCommitter, confirmed_only: bool = False
) -> Dict[str, Any]:
    households = households_from_payload(payload, confirmed_only=confirmed_only)
    return committer.commit(households).to_dict()


def open_committer(database_url: str, session_factory: Optional[sessionmaker[Session]] = None) -> ImportCommitter:
    return ImportCommitter(session_factory or create_session_factory(database_url))
