from typing import Optional

from fastapi import Depends, Header, Request

from app.core.errors import Unauthenticated
from app.core.security import decode_access_token
from app.models.ledger import LedgerKind
from app.models.user import UserInDB
from app.services.auth import AuthService
from app.services.dashboard import DashboardAggregator
from app.services.ledger import LedgerService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_dashboard(request: Request) -> DashboardAggregator:
    return request.app.state.dashboard


def ledger_service(kind: LedgerKind):
    def get_ledger_service(request: Request) -> LedgerService:
        return request.app.state.ledger_services[kind]

    return get_ledger_service


def get_current_user(
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service),
) -> UserInDB:
    """
    Access guard for protected routes: verify the bearer token, then re-fetch
    the user so a token outliving its account is rejected.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("Not authorized, no token")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise Unauthenticated("Not authorized, no token")

    user_id = decode_access_token(token, auth.settings)
    return auth.get_current_user(user_id)
