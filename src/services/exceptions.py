"""Shared exceptions for service layer operations."""


class ValidationError(Exception):
    """
    Raised when input fails validation.

    Carries every violated field at once, mapped to human-readable messages
    (e.g. {"title": ["Title is too short (minimum is 3 characters)"]}).
    Nothing is written when this is raised.
    """

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = errors
        super().__init__("; ".join(self.full_messages))

    @property
    def full_messages(self) -> list[str]:
        """Flatten field errors into a single list of messages."""
        return [message for messages in self.errors.values() for message in messages]


class NotFoundError(Exception):
    """Raised when an id or slug lookup does not resolve."""

    def __init__(self, entity_name: str, identifier: str | int) -> None:
        self.entity_name = entity_name
        self.identifier = identifier
        super().__init__(f"{entity_name} not found")


class AuthorizationError(Exception):
    """Raised when the viewer lacks permission for an action on a resource."""

    def __init__(self, action: str, entity_name: str) -> None:
        self.action = action
        self.entity_name = entity_name
        super().__init__(f"Not authorized to {action} this {entity_name.lower()}")


class SlugConflictError(Exception):
    """Raised when a slug is taken by a concurrent insert between check and flush."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"Slug '{slug}' is already taken, please retry")
