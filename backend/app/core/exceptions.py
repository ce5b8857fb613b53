"""
Billing error taxonomy and its translation to HTTP responses.

Services raise the domain errors below at the point of detection. The API
layer turns them into HTTPExceptions through BusinessError so that internal
details stay in the logs and out of response bodies.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Base class for every error raised by the tax and ledger services."""


class ValidationError(BillingError):
    """A required identifier or value is missing or out of range."""


class MissingLocationError(ValidationError):
    """Seller state or place of supply could not be resolved.

    Raised instead of guessing a tax regime from a missing state id.
    """


class NotFoundError(BillingError):
    """A referenced item, company, customer, invoice or payment does not exist."""

    def __init__(self, resource: str, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is None:
            super().__init__(f"{resource} not found")
        else:
            super().__init__(f"{resource} {resource_id} not found")


class NegativeAmountError(BillingError, ArithmeticError):
    """A taxable base or resulting balance would become negative."""


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        Generic 404 that doesn't confirm resource existence.

        Example:
            if not invoice:
                raise BusinessError.not_found("Invoice")
        """
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation / business logic errors.

        OK to include specific details here since the caller caused the issue.
        Examples: "Discount exceeds line amount", "Seller state is not set"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides from caller.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )

    @staticmethod
    def from_billing_error(error: BillingError) -> HTTPException:
        """Map a domain error onto the matching HTTP response."""
        if isinstance(error, NotFoundError):
            return BusinessError.not_found(error.resource, reason=str(error))
        if isinstance(error, (ValidationError, NegativeAmountError)):
            return BusinessError.bad_request(str(error))
        return BusinessError.server_error(error)
