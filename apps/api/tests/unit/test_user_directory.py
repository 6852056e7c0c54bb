"""Tests for payer email → platform account lookup."""

import pytest

from scaleturbo_api.auth.user_directory import DirectoryUser, get_user_directory
from scaleturbo_api.config.settings import Settings
from webhook_helpers import auth_user, make_user_directory


def test_finds_exact_email_match():
    directory = make_user_directory([auth_user("u-1", "b@x.com"), auth_user("u-2", "a@x.com")])

    assert directory.find_by_email("a@x.com") == DirectoryUser(id="u-2", email="a@x.com")


def test_scans_every_page():
    directory = make_user_directory(
        [auth_user("u-1", "one@x.com"), auth_user("u-2", "two@x.com")],
        [auth_user("u-3", "three@x.com"), auth_user("u-4", "a@x.com")],
        [auth_user("u-5", "five@x.com")],
    )

    user = directory.find_by_email("a@x.com")

    assert user is not None
    assert user.id == "u-4"
    pages = [c.kwargs["page"] for c in directory._client.auth.admin.list_users.call_args_list]
    assert pages == [1, 2]


def test_no_match_after_last_page():
    directory = make_user_directory(
        [auth_user("u-1", "one@x.com"), auth_user("u-2", "two@x.com")],
        [auth_user("u-3", "three@x.com")],
    )

    assert directory.find_by_email("a@x.com") is None
    assert directory._client.auth.admin.list_users.call_count == 2


@pytest.mark.parametrize("email", ["A@X.COM", " a@x.com", "a@x.co"])
def test_match_is_exact(email):
    directory = make_user_directory([auth_user("u-1", "a@x.com")])

    assert directory.find_by_email(email) is None


@pytest.mark.parametrize("email", [None, ""])
def test_missing_email_never_queries(email):
    directory = make_user_directory([auth_user("u-1", "a@x.com")])

    assert directory.find_by_email(email) is None
    directory._client.auth.admin.list_users.assert_not_called()


def test_factory_requires_admin_credentials():
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        get_user_directory(Settings(database_url="sqlite:///:memory:"))
