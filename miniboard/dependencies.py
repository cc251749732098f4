import logging

from fastapi import Header, Request

from miniboard.errors import InvalidCredential, Unauthenticated
from miniboard.security import InvalidToken, PasswordHasher, Principal, TokenService

logger = logging.getLogger(__name__)

_BEARER_SCHEME = "bearer"


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Return the token from an ``Authorization: Bearer <token>`` header value.

    Any other scheme, or a bearer header with nothing after it, counts as no
    token at all.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != _BEARER_SCHEME:
        return None
    return token.strip() or None


async def get_current_principal(
    request: Request,
    authorization: str | None = Header(None),
) -> Principal:
    """
    Authentication gate for protected routes.

    Usage in a router::

        @router.delete("/posts/{post_id}")
        async def delete_post(post_id: int, principal: Principal = Depends(get_current_principal)):
            ...

    A missing token is ``Unauthenticated`` (401); a token that is present but
    fails verification is ``InvalidCredential`` (403). The account row is not
    looked up, so a token outlives the deletion of its account until it
    expires.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise Unauthenticated()
    try:
        return get_token_service(request).verify(token)
    except InvalidToken as exc:
        logger.debug("Rejected bearer token: %s", exc)
        raise InvalidCredential("invalid or expired token")
