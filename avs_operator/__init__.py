"""
Operator package: registers with the delegation manager, watches the service
manager for new tasks and answers each one with a signed response transaction.
"""

from avs_operator.errors import (
    ChainConnectionError,
    ConfigurationError,
    NonceError,
    OperatorError,
    RegistrationError,
    SigningError,
    SigningKeyError,
    SubmissionError,
    SubscriptionError,
)
from avs_operator.models import OperatorRegistration, Task, TaskEvent, TransactionOptions

__all__ = [
    "ChainConnectionError",
    "ConfigurationError",
    "NonceError",
    "OperatorError",
    "OperatorRegistration",
    "RegistrationError",
    "SigningError",
    "SigningKeyError",
    "SubmissionError",
    "SubscriptionError",
    "Task",
    "TaskEvent",
    "TransactionOptions",
]
