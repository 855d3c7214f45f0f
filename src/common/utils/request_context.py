from typing import Optional

from common.models.users import Principal, UserRole


def principal_from_event(event: dict) -> Optional[Principal]:
    """Build the caller from the API Gateway authorizer context."""
    try:
        authorizer = event["requestContext"]["authorizer"]
        user_id = authorizer["user_id"]
    except (KeyError, TypeError):
        return None
    if not user_id:
        return None

    try:
        role = UserRole(str(authorizer.get("role", UserRole.GUEST.value)).upper())
    except ValueError:
        role = UserRole.GUEST
    return Principal(user_id=user_id, role=role)


def path_parameter(event: dict, name: str) -> Optional[str]:
    return (event.get("pathParameters") or {}).get(name)
