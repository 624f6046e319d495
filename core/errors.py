"""
core/errors.py
Domain error taxonomy. Raised by the core, rendered by the handler in main.py.
"""

from fastapi import status


class PortalError(Exception):
    """Base for every error the core raises on purpose."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PORTAL_ERROR"

    def __init__(self, message: str = "Request could not be completed"):
        super().__init__(message)
        self.message = message


class NotFoundError(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id=None):
        message = f"{entity} not found" if entity_id is None else f"{entity} not found: {entity_id}"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenError(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "You are not allowed to perform this action"):
        super().__init__(message)


class ValidationError(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class InvalidVisibilityError(ValidationError):
    code = "INVALID_VISIBILITY"

    def __init__(self, value):
        super().__init__(f"Invalid visibility: {value}")
        self.value = value


# ── Domain rule conflicts (409) ───────────────────────────────

class DomainRuleError(PortalError):
    status_code = status.HTTP_409_CONFLICT
    code = "DOMAIN_RULE"


class AlreadyPrayedError(DomainRuleError):
    code = "ALREADY_PRAYED"

    def __init__(self):
        super().__init__("You have already prayed for this request")


class DuplicateGroupNameError(DomainRuleError):
    code = "DUPLICATE_GROUP_NAME"

    def __init__(self, name: str):
        super().__init__(f"Group name already exists: {name}")


class AlreadyMemberError(DomainRuleError):
    code = "ALREADY_MEMBER"

    def __init__(self):
        super().__init__("You are already a member of this group")


class NotMemberError(DomainRuleError):
    code = "NOT_MEMBER"

    def __init__(self):
        super().__init__("You are not a member of this group")


class LeaderCannotLeaveError(DomainRuleError):
    code = "LEADER_CANNOT_LEAVE"

    def __init__(self):
        super().__init__("Group leader cannot leave the group. Transfer leadership first.")


class DuplicateAccountError(DomainRuleError):
    code = "DUPLICATE_ACCOUNT"

    def __init__(self, field: str):
        super().__init__(f"{field.capitalize()} is already taken")
        self.field = field
