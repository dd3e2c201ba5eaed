"""Authenticated session handling around engine calls"""

import logging
from contextlib import contextmanager
from typing import Iterator

from ledger_engine.domain.exceptions import NotAuthenticated
from ledger_engine.services.repository import IdentityProvider

logger = logging.getLogger(__name__)


def require_owner(identity: IdentityProvider) -> str:
    user_id = identity.current_user_id()
    if not user_id:
        raise NotAuthenticated("no authenticated user")
    return user_id


@contextmanager
def session_guard(identity: IdentityProvider) -> Iterator[str]:
    """
    Yield the current owner id; sign out if the store rejects the session.

    NotAuthenticated still propagates so the in-flight operation halts.
    """
    try:
        yield require_owner(identity)
    except NotAuthenticated:
        logger.warning("Session rejected, signing out", extra={"step": "sign_out"})
        identity.sign_out()
        raise
