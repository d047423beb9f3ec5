from concurrent.futures import Executor, Future

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def classorder_bed():
    from classorder.domain import classorder

    bed = DomainFixture(classorder)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(classorder_bed):
    with classorder_bed.domain_context():
        yield


class InlineExecutor(Executor):
    """Runs each write as soon as it is submitted, on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        future.set_result(fn(*args, **kwargs))
        return future


class ManualExecutor(Executor):
    """Holds writes until the test releases them with ``run_next`` or ``run_all``."""

    def __init__(self):
        self.queued = []

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.queued.append((future, fn, args, kwargs))
        return future

    def run_next(self):
        future, fn, args, kwargs = self.queued.pop(0)
        future.set_result(fn(*args, **kwargs))

    def run_all(self):
        while self.queued:
            self.run_next()


@pytest.fixture()
def inline_executor():
    return InlineExecutor()


@pytest.fixture()
def manual_executor():
    return ManualExecutor()


@pytest.fixture()
def store():
    from classorder.store.memory import InMemoryStore

    return InMemoryStore()


@pytest.fixture()
def make_client(store, tmp_path):
    """Build connected clients that share ``store``, like devices in one classroom."""
    from classorder.client import ClassroomClient
    from classorder.session.resolver import SessionResolver, SessionStore
    from classorder.sync.mirror import OrderSync

    clients = []

    def _make(name="device", executor=None, connect=True):
        sync = OrderSync(store, executor=executor or InlineExecutor())
        sessions = SessionResolver(SessionStore(tmp_path / f"{name}-session.json"), admin_passphrase="letmein")
        client = ClassroomClient(sync, sessions)
        if connect:
            client.start()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture()
def student(make_client):
    client = make_client("student")
    client.login("王小明", "12")
    return client


@pytest.fixture()
def admin(make_client):
    client = make_client("admin")
    client.login("", "", is_admin=True, passphrase="letmein")
    return client
