"""Flat username/password lookup against the catalog's users."""

from __future__ import annotations

import structlog
from werkzeug.security import check_password_hash, generate_password_hash

from drive.core.config import Settings
from drive.core.errors import AuthenticationFailed
from drive.models import User
from drive.storage import CatalogStore

logger = structlog.get_logger(__name__)


def make_user(username: str, password: str, display_name: str) -> User:
    return User(
        username=username,
        password=generate_password_hash(password),
        display_name=display_name,
    )


def seed_users(settings: Settings) -> list[User]:
    return [
        make_user(settings.admin_username, settings.admin_password, settings.admin_display_name)
    ]


def authenticate(catalog_store: CatalogStore, username: str, password: str) -> User:
    """Return the matching user; the username is the identity token."""
    user = catalog_store.load().find_user(username)
    if not user or not check_password_hash(user.password, password):
        logger.info("login_failed", username=username)
        raise AuthenticationFailed("Invalid credentials", {"username": username})
    logger.info("login_succeeded", username=username)
    return user
