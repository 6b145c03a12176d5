"""
Exception hierarchy for the gauge auto-voter.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, feeds)
- NonRetryableException: Permanent failures that won't benefit from retry (bad data)
- ConfigurationException: Startup/config errors that prevent operation

Concrete exceptions:
- FeedException -> RetryableException (eligibility / gauge list HTTP feeds)
- SubmissionTimeout -> RetryableException (confirmation not observed in time)
- AccountDecodeException -> NonRetryableException (unexpected account data)
- TransactionFailedException, MissingSignerException -> NonRetryableException
"""


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Account data that does not match the expected layout
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Invalid configuration values (malformed keys, addresses)
    """

    pass


class FeedException(RetryableException):
    """
    Exception for external JSON feed failures.

    Inherits from RetryableException because feed failures
    are often transient (rate limits, GitHub raw hiccups).
    """

    pass


class SubmissionTimeout(RetryableException):
    """
    Raised when a broadcast transaction is not confirmed in time.

    The message is always "Timeout" so the submission loop classifies it
    as transient. A timeout does not mean the transaction failed.
    """

    def __init__(self, message: str = "Timeout"):
        super().__init__(message)


class AccountDecodeException(NonRetryableException):
    """
    Exception for account data that cannot be decoded.

    Raised when the discriminator or size of an account does not match
    the expected gauge program layout.
    """

    pass


class TransactionFailedException(NonRetryableException):
    """
    Raised when a confirmed transaction reports an execution error.

    The transaction landed, so fees were paid and the caller must not
    assume it had no effect.
    """

    pass


class MissingSignerException(NonRetryableException):
    """Raised when a transaction requires a key the bot does not hold."""

    pass
