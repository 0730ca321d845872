# errors.py
# Exception hierarchy for the task protocol.
#
# Executor-side errors are caught at the pipeline boundary and converted into
# signed failure results. Only VerificationFailure is meant to reach callers.


class MTPError(Exception):
    """Base class for every protocol error."""


class CanonicalizationError(MTPError, ValueError):
    """Raised when a value has no canonical form (NaN, bytes, callables, ...)."""


class AuthenticationFailure(MTPError):
    """Task signature does not verify against the attached public key."""


class CapabilityNotFound(MTPError, LookupError):
    """Capability id is unknown to this executor."""


class SchemaValidationError(MTPError, ValueError):
    """Payload rejected by a capability schema."""


class OutputValidationError(SchemaValidationError):
    """Handler output rejected by the capability's output schema."""


class PolicyRejection(MTPError):
    """Authenticated task refused by the executor's task policy."""


class HandlerExecutionError(MTPError):
    """Capability logic raised while executing a task."""


class VerificationFailure(MTPError):
    """
    A received result failed signature or correlation checks.

    This is a security event. The result must not be used.
    """
