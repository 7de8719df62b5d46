"""
Error taxonomy for the plan loop and its collaborators.

Recoverable inside the loop:
- PlanParseError        -> corrective re-prompt
- StepValidationError   -> error feedback turn
- CapabilityError family -> step output text

Fatal to the loop:
- EnvironmentFault      -> user-facing message returned to the caller
"""


class LumosError(Exception):
    pass


class PlanParseError(LumosError):
    """Planner output could not be turned into a JSON object."""


class StepValidationError(LumosError):
    def __init__(self, message: str, capability: str | None = None):
        super().__init__(message)
        self.capability = capability


class CapabilityError(LumosError):
    pass


class CapabilityUnavailable(CapabilityError):
    """The model behind a capability cannot be used right now."""


class CapabilityExecutionError(CapabilityError):
    pass


class ConfirmationError(LumosError):
    def __init__(self, resource: str, message: str):
        super().__init__(message)
        self.resource = resource


class ConfirmationDeclined(ConfirmationError):
    def __init__(self, resource: str):
        super().__init__(resource, f"User declined to provision {resource}")


class ConfirmationTimeout(ConfirmationError):
    def __init__(self, resource: str, timeout: float):
        super().__init__(resource, f"Timed out after {timeout:g}s waiting for confirmation of {resource}")


class EnvironmentFault(LumosError):
    """
    The surrounding environment refused an action (missing permission,
    rejected credentials, missing user gesture). Never retried.
    """

    user_message = "Error: This task requires user interaction to access AI services. Please try running the task again."

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(message)
        if user_message:
            self.user_message = user_message


class PermissionFault(EnvironmentFault):
    user_message = "Error: The AI service refused access. Please check your credentials and try running the task again."


class LLMError(RuntimeError):
    pass
