import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import main
import storage


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    storage.init_db(bind=engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    storage.seed_plans(session)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db, monkeypatch):
    def override_get_db():
        yield db

    main.app.dependency_overrides[storage.get_db] = override_get_db
    monkeypatch.setattr(main, "fix_sessions", main.FixSessionRegistry(apply_delay=0))
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
