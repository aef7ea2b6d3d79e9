"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class SaasKitException(Exception):
    """Base exception for saaskit services."""

    pass


class PermissionException(SaasKitException):
    """Exception raised when a user does not have the necessary permissions to perform an action."""

    def __init__(
        self,
        message: Optional[str] = "User does not have the right to perform this action",
    ):
        """Create a new PermissionException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class NotFoundException(SaasKitException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ImmutableFieldError(SaasKitException):
    """Exception raised for attempts to modify immutable fields in a database model."""

    def __init__(self, field_name: str, message: str = "Cannot modify immutable field"):
        """Create a new ImmutableFieldError instance.

        Args:
        ----
            field_name (str): The name of the immutable field.
            message (str, optional): The error message. Has default message.

        """
        self.field_name = field_name
        self.message = message
        super().__init__(f"{message}: {field_name}")


class InvalidPlanError(SaasKitException):
    """Raised when a requested plan is neither a known tier nor a configured price."""

    def __init__(self, plan: str):
        """Create a new InvalidPlanError instance.

        Args:
        ----
            plan (str): The plan identifier that could not be resolved.

        """
        self.plan = plan
        self.message = f"Unknown plan: {plan}"
        super().__init__(self.message)


class PaymentRequiredException(SaasKitException):
    """Exception raised when an action is blocked due to subscription status."""

    def __init__(
        self,
        required_tiers: Optional[list[str]] = None,
        message: Optional[str] = None,
    ):
        """Create a new PaymentRequiredException instance.

        Args:
        ----
            required_tiers (list[str], optional): Tiers that would have granted access.
            message (str, optional): Custom error message. If not provided, generates one.

        """
        if message is None:
            if required_tiers:
                message = f"This action requires one of the plans: {', '.join(required_tiers)}"
            else:
                message = "This action requires an active subscription"

        self.required_tiers = required_tiers or []
        self.message = message
        super().__init__(self.message)


class ExternalServiceError(SaasKitException):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


class InvalidStateError(SaasKitException):
    """Exception raised when an object is in an invalid state.

    Used when the local state and the billing provider's state do not allow the
    requested operation, e.g. starting a checkout while a subscription is active.
    """

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


# Webhook processing conditions


class WebhookError(SaasKitException):
    """Base class for errors raised while handling a billing provider event."""

    def __init__(self, message: str, event_id: Optional[str] = None):
        """Create a new WebhookError instance.

        Args:
        ----
            message (str): The error message.
            event_id (str, optional): The provider event ID, once known.

        """
        self.message = message
        self.event_id = event_id
        super().__init__(self.message)


class InvalidSignatureError(WebhookError):
    """The signature header is absent or does not match the raw payload."""

    pass


class MalformedPayloadError(WebhookError):
    """The verified payload is not a well-formed provider event."""

    pass


class UnresolvedUserError(WebhookError):
    """No local user could be resolved for the event's customer."""

    def __init__(
        self,
        stripe_customer_id: Optional[str],
        event_id: Optional[str] = None,
    ):
        """Create a new UnresolvedUserError instance.

        Args:
        ----
            stripe_customer_id (str, optional): The customer the event referenced.
            event_id (str, optional): The provider event ID.

        """
        self.stripe_customer_id = stripe_customer_id
        super().__init__(
            f"No local user found for Stripe customer {stripe_customer_id}", event_id=event_id
        )


class StoreWriteError(WebhookError):
    """Writing the reconciled state to the database failed."""

    pass


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        error_messages.append({field: error["msg"]})

    return {"errors": error_messages}
