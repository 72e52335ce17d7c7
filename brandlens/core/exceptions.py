from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    def __init__(self, message: str, original_error: Exception = None, status_code: Optional[int] = None):
        super().__init__(message, original_error)
        self.status_code = status_code


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class ProviderUnavailableError(AppError):
    """Raised when a provider has no credentials and cannot be selected."""
    def __init__(self, provider: str):
        super().__init__(f"Provider '{provider}' is not available (missing credentials)")
        self.provider = provider


class ProviderCallError(AppError):
    """Raised when a single provider call fails (network, timeout, remote error)."""
    def __init__(self, message: str, original_error: Exception = None, failure_kind: Optional[str] = None):
        super().__init__(message, original_error)
        self.failure_kind = failure_kind


class MalformedResponseError(AppError):
    """Raised when a response cannot be parsed into the expected schema."""
    def __init__(self, message: str, original_error: Exception = None, raw_text: str = ""):
        super().__init__(message, original_error)
        self.raw_text = raw_text


class ConfigInvalidError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class PromptRenderError(ConfigInvalidError):
    """Base class for template rendering failures."""
    pass


class TemplateNotFoundError(PromptRenderError):
    """Raised when a template id is not registered."""
    def __init__(self, template_id: str):
        super().__init__(f"Unknown prompt template: '{template_id}'")
        self.template_id = template_id


class MissingVariableError(PromptRenderError):
    """Raised when a template placeholder has no supplied value."""
    def __init__(self, template_id: str, variables: List[str]):
        super().__init__(
            f"Template '{template_id}' is missing variables: {', '.join(sorted(variables))}"
        )
        self.template_id = template_id
        self.variables = variables


class BatchCancelledError(AppError):
    """Raised when a batch was cancelled before any cell succeeded."""
    def __init__(self, message: str, diagnostics: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or []


class AnalysisFailedError(AppError):
    """Raised when zero cells of an analysis batch succeeded."""
    def __init__(self, message: str, diagnostics: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.diagnostics = diagnostics or []


class ReportStoreError(AppError):
    """Raised when a report store operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass
