"""Tests for the user service."""

import uuid

import pytest

from src.service.exceptions import IllegalParameterError, UserError, UserNotFoundError
from src.service.oidc_auth import OIDCUser
from src.users.user_service import DefaultUserService, UserService
from src.users.user_store import InMemoryUserRepository

ALICE = OIDCUser(subject="alice-sub", email="alice@example.com", name="Alice Baker")


@pytest.fixture
def repo():
    return InMemoryUserRepository()


@pytest.fixture
def service(repo):
    return DefaultUserService(repo)


def test_default_service_is_a_user_service(service):
    assert isinstance(service, UserService)


def test_requires_repository():
    with pytest.raises(ValueError, match="repository"):
        DefaultUserService(None)


def test_first_sign_in_creates_user(service, repo):
    user = service.sign_in(ALICE)

    assert user.subject == "alice-sub"
    assert user.email == "alice@example.com"
    assert user.display_name == "Alice Baker"
    assert user.created_at == user.last_login_at
    assert repo.get(user.id) == user


def test_sign_in_again_returns_same_user(service):
    first = service.sign_in(ALICE)
    second = service.sign_in(ALICE._replace(email="alice@chefify.app"))

    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.last_login_at >= first.last_login_at
    assert second.email == "alice@chefify.app"


def test_sign_in_keeps_email_when_provider_omits_it(service):
    service.sign_in(ALICE)
    user = service.sign_in(ALICE._replace(email=None))

    assert user.email == "alice@example.com"


@pytest.mark.parametrize(
    "identity, expected",
    [
        (OIDCUser(subject="s1", email="chef@example.com"), "chef"),
        (OIDCUser(subject="s2", name="   "), "s2"),
        (OIDCUser(subject="s3"), "s3"),
    ],
)
def test_default_display_name(service, identity, expected):
    assert service.sign_in(identity).display_name == expected


def test_get_user(service):
    user = service.sign_in(ALICE)

    assert service.get_user(user.id) == user
    with pytest.raises(UserNotFoundError):
        service.get_user(uuid.uuid4())


def test_get_user_by_subject(service):
    user = service.sign_in(ALICE)

    assert service.get_user_by_subject("alice-sub") == user
    assert service.get_user_by_subject("bob-sub") is None


def test_update_profile(service):
    user = service.sign_in(ALICE)

    updated = service.update_profile(user.id, "  Chef Alice  ")

    assert updated.display_name == "Chef Alice"
    assert service.get_user(user.id).display_name == "Chef Alice"


@pytest.mark.parametrize("name", ["", "   ", None, "x" * 101])
def test_update_profile_rejects_bad_names(service, name):
    user = service.sign_in(ALICE)

    with pytest.raises(IllegalParameterError):
        service.update_profile(user.id, name)


def test_update_profile_unknown_user(service):
    with pytest.raises(UserNotFoundError):
        service.update_profile(uuid.uuid4(), "Nobody")


def test_repository_rejects_duplicate_subject(service, repo):
    user = service.sign_in(ALICE)

    with pytest.raises(UserError, match="subject"):
        repo.add(user.model_copy(update={"id": uuid.uuid4()}))


def test_repository_rejects_subject_change(service, repo):
    user = service.sign_in(ALICE)

    with pytest.raises(UserError, match="subject"):
        repo.update(user.model_copy(update={"subject": "mallory"}))
