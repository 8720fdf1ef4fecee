import pytest

from fyht4.gate import (
    ELEVATE_PATH,
    Decision,
    IdentityToken,
    RequestDescriptor,
    authorize,
    is_gated,
    token_from_session,
)

USER = IdentityToken(user_id="u1", email="u@example.com", role="user")
ADMIN = IdentityToken(user_id="a1", email="a@example.com", role="admin")


@pytest.mark.parametrize("token", [USER, ADMIN, IdentityToken(user_id="x", role=None)])
def test_elevate_allows_any_token(token):
    assert authorize(RequestDescriptor(ELEVATE_PATH, token)) is Decision.ALLOW


def test_elevate_denies_anonymous():
    assert authorize(RequestDescriptor(ELEVATE_PATH, None)) is Decision.DENY


@pytest.mark.parametrize("path", ["/admin", "/admin/proposals", "/api/admin/proposals", "/api/admin/proposals/abc"])
def test_admin_role_required(path):
    assert authorize(RequestDescriptor(path, ADMIN)) is Decision.ALLOW
    assert authorize(RequestDescriptor(path, USER)) is Decision.DENY
    assert authorize(RequestDescriptor(path, None)) is Decision.DENY


@pytest.mark.parametrize("role", ["Admin", "ADMIN", "administrator", " admin", ""])
def test_role_match_is_exact(role):
    token = IdentityToken(user_id="u", role=role)
    assert authorize(RequestDescriptor("/api/admin/proposals", token)) is Decision.DENY


def test_same_token_elevate_vs_proposals():
    assert authorize(RequestDescriptor("/api/admin/elevate", USER)) is Decision.ALLOW
    assert authorize(RequestDescriptor("/api/admin/proposals", USER)) is Decision.DENY


@pytest.mark.parametrize("path,expected", [
    ("/admin", True),
    ("/admin/", True),
    ("/admin/projects", True),
    ("/api/admin", True),
    ("/api/admin/elevate", True),
    ("/administrator", False),
    ("/api/administer", False),
    ("/api/auth/role", False),
    ("/", False),
    ("/healthz", False),
])
def test_is_gated(path, expected):
    assert is_gated(path) is expected


def test_token_from_session():
    assert token_from_session({}) is None
    tok = token_from_session({"uid": "abc", "email": "e@x.com", "role": "admin"})
    assert tok == IdentityToken(user_id="abc", email="e@x.com", role="admin")
