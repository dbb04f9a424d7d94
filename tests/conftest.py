import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from pairwatch.config import settings
from pairwatch.database import Base, build_engine
from pairwatch.dependencies import get_db, create_access_token
from pairwatch.main import app
from pairwatch.models.pairing_request import PairingRequest, PairingStatus, pair_key
from pairwatch.models.user import User
from pairwatch.services.locks import UserLockRegistry

test_engine = build_engine(settings.test_database_url)
TestSession = sessionmaker(bind=test_engine, join_transaction_mode="create_savepoint")

if test_engine.dialect.name == "sqlite":
    # pysqlite defers BEGIN, which breaks SAVEPOINT. Take over transaction
    # control so a service rollback only undoes its own savepoint.

    @event.listens_for(test_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db():
    connection = test_engine.connect()
    transaction = connection.begin()
    session = TestSession(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def locks():
    return UserLockRegistry()


@pytest.fixture
def make_user(db):
    def _make_user(name):
        user = User(email=f"{name.lower()}@test.com", name=name)
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def alice(make_user):
    return make_user("Alice")


@pytest.fixture
def bob(make_user):
    return make_user("Bob")


@pytest.fixture
def carol(make_user):
    return make_user("Carol")


@pytest.fixture
def make_request(db):
    def _make_request(requester, recipient, status=PairingStatus.PENDING):
        request = PairingRequest(
            requester_id=requester.id,
            recipient_id=recipient.id,
            status=status,
            pending_pair_key=(
                pair_key(requester.id, recipient.id)
                if status == PairingStatus.PENDING
                else None
            ),
        )
        db.add(request)
        db.commit()
        return request

    return _make_request


@pytest.fixture
def pending_request(make_request, alice, bob):
    return make_request(alice, bob)


@pytest.fixture
def accepted_pairing(make_request, alice, bob):
    return make_request(alice, bob, PairingStatus.ACCEPTED)


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def auth_headers():
    return headers_for


@pytest.fixture
def alice_headers(alice):
    return headers_for(alice)


@pytest.fixture
def bob_headers(bob):
    return headers_for(bob)


@pytest.fixture
def shared_store(tmp_path):
    """A file-backed database whose commits are visible to every session."""
    engine = build_engine(f"sqlite:///{tmp_path / 'pairwatch.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def user_ids(shared_store):
    with shared_store() as session:
        users = [User(email=f"user{i}@test.com", name=f"User {i}") for i in range(1, 7)]
        session.add_all(users)
        session.commit()
        return [u.id for u in users]
