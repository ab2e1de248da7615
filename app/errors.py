"""
Application error taxonomy.

Services raise these; main.py renders them as JSON with a stable "code".
Messages of ExternalProviderError and ConfigurationError are logged but not
returned to clients (see public_message).
"""


class AppError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, msg: str | None = None):
        self.msg = msg or self.default_message
        super().__init__(self.msg)

    @property
    def public_message(self) -> str:
        return self.msg


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"

    def __init__(self, msg: str | None = None, field: str | None = None):
        super().__init__(msg)
        self.field = field


class AuthenticationError(AppError):
    status_code = 401
    code = "authentication_error"
    default_message = "Not authenticated"


class AuthorizationError(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class ExternalProviderError(AppError):
    status_code = 502
    code = "external_provider_error"
    default_message = "Upstream provider failure"

    @property
    def public_message(self) -> str:
        return self.default_message


class ConfigurationError(AppError):
    status_code = 500
    code = "configuration_error"
    default_message = "Service is not configured"

    @property
    def public_message(self) -> str:
        return self.default_message


# --- Identity ---

class InvalidAssertion(AuthenticationError):
    code = "invalid_assertion"
    default_message = "Invalid Google token"


class EmailNotVerified(ValidationError):
    code = "email_not_verified"
    default_message = "Email not verified with Google"


class InvalidOrExpiredCredential(AuthenticationError):
    code = "invalid_or_expired_credential"
    default_message = "Invalid or expired token"


class InvalidCredentials(AuthenticationError):
    code = "invalid_credentials"
    default_message = "Invalid email or password"


class CurrentPasswordRequired(ValidationError):
    code = "current_password_required"
    default_message = "Current password is required to change your password"

    def __init__(self, msg: str | None = None):
        super().__init__(msg, field="current_password")


class CurrentPasswordIncorrect(AuthenticationError):
    code = "current_password_incorrect"
    default_message = "Current password is incorrect"


class UserNotFound(NotFoundError):
    code = "user_not_found"
    default_message = "User not found"


# --- Folders ---

class ParentNotFound(NotFoundError):
    code = "parent_not_found"
    default_message = "Parent folder does not exist"


class CannotMoveToSelf(ValidationError):
    code = "cannot_move_to_self"
    default_message = "A folder cannot be moved into itself"

    def __init__(self, msg: str | None = None):
        super().__init__(msg, field="parent_id")


class CircularReference(ConflictError):
    code = "circular_reference"
    default_message = "Cannot move a folder into one of its descendants"


class FolderNotEmpty(ConflictError):
    code = "folder_not_empty"
    default_message = "Folder is not empty"


# --- Payments ---

class AlreadySubscribed(ConflictError):
    code = "already_subscribed"
    default_message = "You already have a lifetime subscription"


class AlreadyPurchased(ConflictError):
    code = "already_purchased"
    default_message = "You have already purchased this document"


class PaymentNotFound(NotFoundError):
    code = "payment_not_found"
    default_message = "Payment not found"


class UnauthorizedSessionAccess(AuthorizationError):
    code = "unauthorized_session_access"
    default_message = "Unauthorized access to this payment session"


class InvalidWebhookSignature(ValidationError):
    code = "invalid_webhook_signature"
    default_message = "Invalid webhook signature"
