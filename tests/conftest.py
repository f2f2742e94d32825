import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest

# point the engine at a throwaway database before classroom.db is imported
TEST_DB = os.path.join(os.path.dirname(__file__), 'test_app.db')
os.environ['DATABASE_URL'] = f'sqlite:///{TEST_DB}'
for key in ('SMTP_HOST', 'SMTP_PORT', 'SMTP_USER', 'SMTP_PASS'):
    os.environ.pop(key, None)

from classroom.db import init_db, get_session  # noqa: E402
from classroom.models import User  # noqa: E402
from classroom.storage import StoredFile  # noqa: E402


@pytest.fixture(scope='session', autouse=True)
def reset_db():
    # Ensure a clean DB for the test session
    try:
        os.remove(TEST_DB)
    except FileNotFoundError:
        pass
    init_db()
    yield
    try:
        os.remove(TEST_DB)
    except OSError:
        pass


class FakeClock:
    def __init__(self, now=None):
        self.now = now or datetime.now(timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeMailer:
    def __init__(self, fail=False, explode=False):
        self.sent = []
        self.fail = fail
        self.explode = explode

    def send(self, kind, recipient, payload):
        if self.explode:
            raise RuntimeError("smtp down")
        self.sent.append((kind, recipient, dict(payload)))
        return not self.fail

    def codes_for(self, email):
        return [p['otp_code'] for kind, to, p in self.sent if to == email and 'otp_code' in p]


class FakeStorage:
    def __init__(self, fail_on_upload=None, fail_on_delete=False):
        self.blobs = {}
        self.uploads = 0
        self.fail_on_upload = fail_on_upload
        self.fail_on_delete = fail_on_delete

    def upload(self, file, folder):
        self.uploads += 1
        if self.fail_on_upload is not None and self.uploads >= self.fail_on_upload:
            raise OSError("bucket unavailable")
        path = f"{folder}/{self.uploads}_{file.original_name}"
        self.blobs[path] = file.content
        return StoredFile(storage_path=path, public_url=f"https://files.example.com/{path}")

    def delete(self, storage_path):
        if self.fail_on_delete:
            raise OSError("bucket unavailable")
        self.blobs.pop(storage_path, None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def make_user():
    def _make(role='student', first_name='Test'):
        with get_session() as s:
            user = User(
                email=f'{role}_{uuid.uuid4().hex[:10]}@example.com',
                password_hash='x',
                first_name=first_name,
                last_name='User',
                role=role,
            )
            s.add(user)
            s.commit()
            s.refresh(user)
            return user
    return _make
