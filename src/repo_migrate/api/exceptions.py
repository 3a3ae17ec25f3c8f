"""Orchestration exceptions."""

from typing import Optional


class OrchestratorError(Exception):
    """Base exception for orchestration errors."""

    error_type = 'error'

    def __init__(self, message: str, details: Optional[dict] = None):
        """Initialize orchestration error.

        Args:
            message: Error message
            details: Additional structured context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class OrchestratorValidationError(OrchestratorError):
    """Invalid arguments or an operation not allowed in the current state."""

    error_type = 'validation_error'


class OrchestratorNotFoundError(OrchestratorError):
    """Referenced batch or repository does not exist."""

    error_type = 'not_found'

    def __init__(self, entity_type: str, identifier, message: Optional[str] = None):
        """Initialize not found error.

        Args:
            entity_type: Kind of entity (batch, repository, tool)
            identifier: Name or ID that failed to resolve
            message: Optional override of the default message
        """
        super().__init__(
            message or f'{entity_type} not found: {identifier}',
            details={'entity_type': entity_type, 'identifier': identifier},
        )
        self.entity_type = entity_type
        self.identifier = identifier


class OrchestratorPermissionError(OrchestratorError):
    """Caller lacks the tier required by an operation."""

    error_type = 'permission_denied'

    def __init__(self, tool_name: str, required_tier: str, reason: str = ''):
        """Initialize permission error.

        Args:
            tool_name: Operation that was denied
            required_tier: Tier the operation requires
            reason: Human readable denial reason
        """
        super().__init__(
            reason or f'{tool_name} requires {required_tier} permissions',
            details={'tool': tool_name, 'required_tier': required_tier},
        )
        self.tool_name = tool_name
        self.required_tier = required_tier


class UpstreamServiceError(OrchestratorError):
    """Error returned by an external service."""

    error_type = 'upstream_error'

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        """Initialize upstream error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from the service
        """
        super().__init__(message, details={'status_code': status_code})
        self.status_code = status_code
        self.response_data = response_data
