"""
Authorization policies for prompts and users.

Every policy is a pure function of (viewer, action, resource) returning a
bool, with no dependency on the request framework or the database. `viewer`
is None for unauthenticated requests.

The SQL counterpart of `can_view_in_listing` lives in
services.prompt_service.scope_visible_prompts; the two must stay in sync.
"""
from enum import StrEnum

from models.prompt import Prompt, Visibility
from models.user import User
from services.exceptions import AuthorizationError


class PromptAction(StrEnum):
    """Actions that can be performed on a prompt."""

    INDEX = "index"
    SHOW = "show"
    VERSIONS = "versions"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    RESTORE_VERSION = "restore_version"
    DUPLICATE = "duplicate"
    USE = "use"
    ATTACH = "attach"


class UserAction(StrEnum):
    """Actions that can be performed on a user account."""

    INDEX = "index"
    SHOW = "show"
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    MAKE_ADMIN = "make_admin"


def _is_admin(viewer: User | None) -> bool:
    return viewer is not None and viewer.is_admin


def _is_owner(viewer: User | None, prompt: Prompt) -> bool:
    return viewer is not None and prompt.user_id == viewer.id


def can_view_in_listing(viewer: User | None, prompt: Prompt) -> bool:
    """
    Decide whether a prompt appears in the viewer's listings.

    Admins see everything. Authenticated viewers see public prompts, their own
    prompts, and team prompts (team membership is not modelled, so every
    authenticated viewer counts as a member). Anonymous viewers see public only.
    """
    if _is_admin(viewer):
        return True
    if prompt.visibility == Visibility.PUBLIC:
        return True
    if viewer is None:
        return False
    return prompt.user_id == viewer.id or prompt.visibility == Visibility.TEAM


def can_show(viewer: User | None, prompt: Prompt) -> bool:
    """Public prompts, the owner's own prompts, or any prompt for an admin."""
    return (
        prompt.visibility == Visibility.PUBLIC
        or _is_owner(viewer, prompt)
        or _is_admin(viewer)
    )


def can_modify(viewer: User | None, prompt: Prompt) -> bool:
    """Only the owner or an admin may change or delete a prompt."""
    return _is_owner(viewer, prompt) or _is_admin(viewer)


def can(viewer: User | None, action: PromptAction | str, prompt: Prompt) -> bool:
    """Evaluate the prompt policy for an action."""
    action = PromptAction(action)
    if action == PromptAction.INDEX:
        return True
    if action in (PromptAction.SHOW, PromptAction.VERSIONS, PromptAction.USE):
        return can_show(viewer, prompt)
    if action == PromptAction.CREATE:
        return viewer is not None
    if action == PromptAction.DUPLICATE:
        return viewer is not None and can_show(viewer, prompt)
    # UPDATE, DESTROY, RESTORE_VERSION, ATTACH
    return viewer is not None and can_modify(viewer, prompt)


def can_manage_user(viewer: User | None, action: UserAction | str, user: User | None) -> bool:
    """Evaluate the user policy for an action; `user` is the target account."""
    action = UserAction(action)
    if action == UserAction.CREATE:
        return True
    if action in (UserAction.INDEX, UserAction.MAKE_ADMIN):
        return _is_admin(viewer)
    if viewer is None or user is None:
        return False
    return user.id == viewer.id or viewer.is_admin


def authorize(viewer: User | None, action: PromptAction | str, prompt: Prompt) -> None:
    """
    Raise AuthorizationError unless the viewer may perform the action.

    Raises:
        AuthorizationError: If the prompt policy denies the action.
    """
    if not can(viewer, action, prompt):
        raise AuthorizationError(str(action).replace("_", " "), "Prompt")


def authorize_user(viewer: User | None, action: UserAction | str, user: User | None) -> None:
    """
    Raise AuthorizationError unless the viewer may perform the action on the account.

    Raises:
        AuthorizationError: If the user policy denies the action.
    """
    if not can_manage_user(viewer, action, user):
        raise AuthorizationError(str(action).replace("_", " "), "User")
