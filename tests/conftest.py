from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from report_engine.db.base import Base
from report_engine.db.dependencies import get_db_session
import report_engine.models.entities  # noqa: F401
from report_engine.main import create_app
from report_engine.models.entities import (
    GeneratedReport,
    ProgressUpdate,
    Project,
    ProjectMilestone,
    ReportTemplateRecord,
    SystemAlert,
    Transaction,
    User,
)

TEST_TABLES = [
    User.__table__,
    Project.__table__,
    ProgressUpdate.__table__,
    ProjectMilestone.__table__,
    SystemAlert.__table__,
    Transaction.__table__,
    GeneratedReport.__table__,
    ReportTemplateRecord.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

