"""
Ownership rules for posts and comments.

Only update and delete go through here. Creation is open to any
authenticated principal (the owner is stamped from the principal) and
reads are either public or filtered by ``owner == principal.id``.

Callers must load the target first and raise ``NotFound`` for a missing
id before asking the policy, so a missing resource is never reported as a
denial, not even to an administrator.
"""
from miniboard.errors import InvalidCredential
from miniboard.models import Role
from miniboard.security import Principal


def can_mutate(principal: Principal, owner_id: int) -> bool:
    return principal.role is Role.ADMINISTRATOR or principal.id == owner_id


def ensure_can_mutate(principal: Principal, owner_id: int) -> None:
    if not can_mutate(principal, owner_id):
        raise InvalidCredential("not allowed to modify this resource")
