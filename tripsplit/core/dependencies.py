from fastapi import Request

from tripsplit.core.config import Settings
from tripsplit.core.errors import AuthenticationError
from tripsplit.db.dal import Database


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Database:
    return Database(request.app.state.settings.db_path)


def get_current_member(request: Request) -> str:
    """Opaque member id supplied by the upstream auth layer; trusted as-is."""
    header = request.app.state.settings.member_header
    member_id = (request.headers.get(header) or "").strip()
    if not member_id:
        raise AuthenticationError(
            f"Missing {header} header", {"header": header}
        )
    return member_id
