"""
User operations
"""

from typing import Optional

import strawberry
from strawberry.types import Info

from mediatrack.errors import NotEnabled, NotFound, ValidationFailed
from mediatrack.serving.api.registry import OperationSet
from mediatrack.serving.api.types import Identifier, UserItem


@strawberry.input
class RegisterUserInput:
    username: str
    password: str


@strawberry.input
class UpdateUserInput:
    username: Optional[str] = None


operations = OperationSet("users")


@operations.query
async def user_details(info: Info, user_id: Identifier) -> Optional[UserItem]:
    """Get a user by id"""
    user = await info.context.store.get_user(user_id)
    return UserItem.from_row(user) if user else None


@operations.mutation
async def register_user(info: Info, input: RegisterUserInput) -> UserItem:
    """Create a new user account"""
    if not input.password:
        raise ValidationFailed("password must not be empty")
    user = await info.context.store.create_user(input.username, input.password)
    return UserItem.from_row(user)


@operations.mutation
async def update_user(info: Info, user_id: Identifier, input: UpdateUserInput) -> UserItem:
    """Change a user's details"""
    store = info.context.store
    if input.username is None:
        user = await store.get_user(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return UserItem.from_row(user)

    if not info.context.settings.users.allow_changing_username:
        raise NotEnabled("Changing usernames")
    user = await store.update_user(user_id, username=input.username)
    return UserItem.from_row(user)


@operations.mutation
async def delete_user(info: Info, user_id: Identifier) -> bool:
    """Delete a user along with everything they own"""
    return await info.context.store.delete_user(user_id)
