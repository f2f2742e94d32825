import base64
import json
import uuid

import pytest
from sqlmodel import select

from conftest import FakeMailer

from classroom.auth import LocalIdentityProvider, authenticate_user, create_user
from classroom.db import get_session
from classroom.errors import (
    InvalidOrExpiredOtp,
    InvalidOrExpiredToken,
    RateLimited,
    UpstreamUnavailable,
    UserNotFound,
    ValidationError,
)
from classroom.mailer import PASSWORD_RESET_CONFIRMATION, PASSWORD_RESET_OTP
from classroom.models import PasswordResetOtp
from classroom.password_reset import REQUEST_MESSAGE, PasswordResetService
from classroom.tokens import create_reset_token

SECRET = 'test-secret'


@pytest.fixture
def service(mailer, clock):
    return PasswordResetService(mailer, LocalIdentityProvider(), clock=clock, secret=SECRET)


@pytest.fixture
def account():
    email = f'reset_{uuid.uuid4().hex[:10]}@example.com'
    return create_user(email, 'OldPass@123', first_name='Ada', last_name='Lovelace')


def _sequence(monkeypatch, *codes):
    it = iter(codes)
    monkeypatch.setattr('classroom.password_reset.generate_otp_code', lambda: next(it))


def test_request_response_does_not_reveal_account(service, mailer, account):
    unknown = service.request_otp('nobody_here@example.com')
    known = service.request_otp(account.email)
    assert unknown == known == {'message': REQUEST_MESSAGE}
    # only the real account got mail
    assert [to for _, to, _ in mailer.sent] == [account.email]


def test_request_sends_code_with_first_name(service, mailer, account):
    service.request_otp(account.email.upper())
    kind, to, payload = mailer.sent[-1]
    assert kind == PASSWORD_RESET_OTP
    assert to == account.email
    assert payload['first_name'] == 'Ada'
    assert len(payload['otp_code']) == 6 and payload['otp_code'].isdigit()


def test_rate_limit_and_older_codes_invalidated(service, account, monkeypatch):
    _sequence(monkeypatch, '111111', '222222', '333333', '444444')
    for _ in range(3):
        service.request_otp(account.email)
    with pytest.raises(RateLimited) as exc:
        service.request_otp(account.email)
    assert exc.value.status_code == 429
    assert exc.value.retry_after == 15 * 60

    with pytest.raises(InvalidOrExpiredOtp):
        service.verify_otp(account.email, '111111')
    with pytest.raises(InvalidOrExpiredOtp):
        service.verify_otp(account.email, '222222')
    result = service.verify_otp(account.email, '333333')
    assert result['expires_in'] == 15 * 60
    assert result['reset_token']


def test_rate_window_slides(service, clock, account):
    for _ in range(3):
        service.request_otp(account.email)
    clock.advance(minutes=16)
    assert service.request_otp(account.email) == {'message': REQUEST_MESSAGE}


def test_code_verifies_only_once(service, mailer, account):
    service.request_otp(account.email)
    code = mailer.codes_for(account.email)[-1]
    service.verify_otp(account.email, code)
    with pytest.raises(InvalidOrExpiredOtp):
        service.verify_otp(account.email, code)


def test_code_expires(service, mailer, clock, account):
    service.request_otp(account.email)
    code = mailer.codes_for(account.email)[-1]
    clock.advance(minutes=11)
    with pytest.raises(InvalidOrExpiredOtp) as exc:
        service.verify_otp(account.email, code)
    assert exc.value.status_code == 400


def test_code_for_other_email_rejected(service, mailer, account):
    service.request_otp(account.email)
    code = mailer.codes_for(account.email)[-1]
    with pytest.raises(InvalidOrExpiredOtp):
        service.verify_otp('someone_else@example.com', code)


@pytest.mark.parametrize('bad', ['12345', '1234567', 'abcdef', '', None])
def test_malformed_code_rejected(service, account, bad):
    with pytest.raises(ValidationError):
        service.verify_otp(account.email, bad)


def test_full_reset_flow(service, mailer, account):
    service.request_otp(account.email)
    code = mailer.codes_for(account.email)[-1]
    token = service.verify_otp(account.email, code)['reset_token']

    # a code issued after verification is cleared by the reset
    service.request_otp(account.email)

    service.reset_password(token, 'NewPass@456')

    assert authenticate_user(account.email, 'NewPass@456') is not None
    assert authenticate_user(account.email, 'OldPass@123') is None
    assert mailer.sent[-1][0] == PASSWORD_RESET_CONFIRMATION

    with get_session() as s:
        left = s.exec(
            select(PasswordResetOtp).where(
                PasswordResetOtp.user_id == account.id,
                PasswordResetOtp.is_used == False,  # noqa: E712
            )
        ).all()
    assert left == []


def test_reset_token_expires(service, mailer, clock, account):
    service.request_otp(account.email)
    token = service.verify_otp(account.email, mailer.codes_for(account.email)[-1])['reset_token']
    clock.advance(minutes=16)
    with pytest.raises(InvalidOrExpiredToken) as exc:
        service.reset_password(token, 'NewPass@456')
    assert exc.value.status_code == 401


def test_forged_tokens_rejected(service, clock, account):
    wrong_key = create_reset_token(account.id, account.password_hash, clock(), secret='someone-elses-secret')
    unsigned = base64.b64encode(json.dumps({'userId': account.id, 'exp': 9999999999}).encode()).decode()
    for token in (wrong_key, unsigned, 'not-a-token', ''):
        with pytest.raises(InvalidOrExpiredToken):
            service.reset_password(token, 'NewPass@456')
    assert authenticate_user(account.email, 'OldPass@123') is not None


def test_reset_for_missing_user(service, clock):
    token = create_reset_token(987654321, 'x', clock(), secret=SECRET)
    with pytest.raises(UserNotFound) as exc:
        service.reset_password(token, 'NewPass@456')
    assert exc.value.status_code == 404


@pytest.mark.parametrize('fail, explode', [(True, False), (False, True)])
def test_mail_failure_is_not_fatal(clock, account, fail, explode):
    mailer = FakeMailer(fail=fail, explode=explode)
    service = PasswordResetService(mailer, LocalIdentityProvider(), clock=clock, secret=SECRET)
    assert service.request_otp(account.email) == {'message': REQUEST_MESSAGE}

    with get_session() as s:
        rows = s.exec(select(PasswordResetOtp).where(PasswordResetOtp.user_id == account.id)).all()
    assert len(rows) == 1


def _reset_token(service, mailer, email):
    service.request_otp(email)
    return service.verify_otp(email, mailer.codes_for(email)[-1])['reset_token']


def test_reset_token_works_once(service, mailer, account):
    token = _reset_token(service, mailer, account.email)
    service.reset_password(token, 'First@1234')

    with pytest.raises(InvalidOrExpiredToken):
        service.reset_password(token, 'Second@1234')
    assert authenticate_user(account.email, 'First@1234') is not None
    assert authenticate_user(account.email, 'Second@1234') is None


def test_token_dies_when_password_changes_elsewhere(service, mailer, account):
    token = _reset_token(service, mailer, account.email)
    LocalIdentityProvider().update_credential(account.id, 'Changed@999')
    with pytest.raises(InvalidOrExpiredToken):
        service.reset_password(token, 'NewPass@456')


def test_code_claimed_by_concurrent_verify(service, mailer, clock, account):
    service.request_otp(account.email)
    code = mailer.codes_for(account.email)[-1]

    # both requests read the row before either marks it used
    with get_session() as s:
        stale = service._find_valid_otp(s, account.email, code, clock())
    assert stale is not None
    service.verify_otp(account.email, code)

    service._find_valid_otp = lambda session, email, otp_code, now: stale
    with pytest.raises(InvalidOrExpiredOtp):
        service.verify_otp(account.email, code)


class BrokenIdentity(LocalIdentityProvider):
    def update_credential(self, user_id, new_password):
        raise RuntimeError('directory unavailable')


def test_identity_failure_is_upstream_error(mailer, clock, account):
    service = PasswordResetService(mailer, BrokenIdentity(), clock=clock, secret=SECRET)
    token = _reset_token(service, mailer, account.email)
    with pytest.raises(UpstreamUnavailable) as exc:
        service.reset_password(token, 'NewPass@456')
    assert exc.value.status_code == 502
    assert authenticate_user(account.email, 'OldPass@123') is not None
    assert mailer.sent[-1][0] == PASSWORD_RESET_OTP


def test_update_credential_for_missing_user():
    with pytest.raises(UserNotFound):
        LocalIdentityProvider().update_credential(987654321, 'NewPass@456')
