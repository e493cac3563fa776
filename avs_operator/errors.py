class OperatorError(Exception): ...


class ConfigurationError(OperatorError): ...


class ChainConnectionError(OperatorError): ...


class RegistrationError(OperatorError): ...


class SubscriptionError(OperatorError): ...


class SigningKeyError(OperatorError): ...


class NonceError(OperatorError): ...


class SigningError(OperatorError): ...


class SubmissionError(OperatorError): ...


# Raised before anything reached the node; the same event may be tried again.
RETRYABLE_ERRORS = (SigningKeyError, NonceError, SigningError)

# Errors that only concern the event being processed; everything else stops the loop.
PER_EVENT_ERRORS = RETRYABLE_ERRORS + (SubmissionError,)
