import pytest

from classroom.errors import ValidationError
from classroom.validators import validate_email, validate_new_password, validate_otp_code


def test_email_normalized():
    assert validate_email('  Ada@Example.COM ') == 'ada@example.com'


@pytest.mark.parametrize('bad', ['', None, 'ada', 'ada@', 'ada@example', 'a b@example.com'])
def test_email_rejected(bad):
    with pytest.raises(ValidationError):
        validate_email(bad)


def test_otp_code():
    assert validate_otp_code(' 123456 ') == '123456'
    with pytest.raises(ValidationError):
        validate_otp_code('12a456')


@pytest.mark.parametrize('password', ['NewPass@456', 'Xy1!aaaa'])
def test_password_accepted(password):
    assert validate_new_password(password) == password


@pytest.mark.parametrize('password, fragment', [
    ('Sh0rt!', '8 characters'),
    ('alllowercase1!', 'uppercase'),
    ('NoDigits!!', 'number'),
    ('NoSpecial123', 'special character'),
])
def test_password_rejected(password, fragment):
    with pytest.raises(ValidationError) as exc:
        validate_new_password(password)
    assert fragment in exc.value.message
    # the error is also a ValueError for callers that catch that
    assert isinstance(exc.value, ValueError)
