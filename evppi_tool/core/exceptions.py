"""Custom exceptions for evppi_tool.

Provides the exception hierarchy used by the sampling and estimation
pipeline, with error context and recovery suggestions attached to each error.
"""

from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    COMPUTATION = "computation"
    IO = "io"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class EVPPIToolError(Exception):
    """Base exception for all evppi_tool errors.

    Provides structured error information with context, severity,
    and recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize structured error.

        Args:
            message: Human-readable error description
            category: Error category for classification
            severity: Error severity level
            error_code: Unique error identifier
            context: Additional error context
            recovery_suggestions: List of recovery suggestions
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.cause = cause

    def _generate_error_code(self) -> str:
        """Generate error code from class name."""
        return f"EVPPI_{self.__class__.__name__.upper()}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            'error_code': self.error_code,
            'message': self.message,
            'category': self.category.value,
            'severity': self.severity.value,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions,
            'exception_type': self.__class__.__name__,
            'cause': str(self.cause) if self.cause else None
        }


# Data Validation Errors
class ValidationError(EVPPIToolError):
    """Raised when input data validation fails."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Any = None,
        **kwargs
    ):
        context = kwargs.pop('context', None) or {}
        context.update({
            'field_name': field_name,
            'field_value': field_value,
        })

        recovery_suggestions = kwargs.pop('recovery_suggestions', None) or [
            "Check input values against their documented constraints",
            "Verify the configuration matches the expected schema",
        ]

        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=kwargs.pop('severity', ErrorSeverity.HIGH),
            context=context,
            recovery_suggestions=recovery_suggestions,
            **kwargs
        )


class InvalidParameterError(ValidationError):
    """Raised when distribution or run parameters are malformed.

    Always raised at setup time, before any sampling takes place.
    """

    def __init__(
        self,
        message: str,
        distribution_type: Optional[str] = None,
        parameter_name: Optional[str] = None,
        parameter_value: Any = None,
        **kwargs
    ):
        context = kwargs.pop('context', None) or {}
        context['distribution_type'] = distribution_type

        recovery_suggestions = [
            f"Check the {parameter_name or 'parameter'} value"
            + (f" of the {distribution_type} distribution" if distribution_type else ""),
            "Lognormal requires mean > 0 and variance >= 0; beta requires alpha > 0 and beta > 0",
        ]

        super().__init__(
            message,
            field_name=parameter_name,
            field_value=parameter_value,
            context=context,
            recovery_suggestions=recovery_suggestions,
            **kwargs
        )


# Computation Errors
class ComputationError(EVPPIToolError):
    """Raised when numerical computation fails."""

    def __init__(self, message: str, operation: str, **kwargs):
        context = kwargs.pop('context', None) or {}
        context['operation'] = operation

        recovery_suggestions = kwargs.pop('recovery_suggestions', None) or [
            "Check input data for numerical issues",
            "Verify parameters are within valid ranges",
        ]

        super().__init__(
            message,
            category=ErrorCategory.COMPUTATION,
            context=context,
            recovery_suggestions=recovery_suggestions,
            **kwargs
        )


class ForwardModelDomainError(ComputationError):
    """Raised when the forward model is evaluated outside its domain.

    Covers negative or non-finite concentrations, a zero baseline relative
    risk and errors raised by the dose-response function. Fatal for the run.
    """

    def __init__(self, message: str, **kwargs):
        recovery_suggestions = [
            "Check that sampled concentrations cannot become negative",
            "Check that the car-attributable fraction lies in [0, 1]",
            "Verify the dose-response function accepts the sampled range",
        ]

        super().__init__(
            message,
            operation="forward_model",
            recovery_suggestions=recovery_suggestions,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


class DegenerateVarianceError(ComputationError):
    """Raised when a scenario's outcome column has zero variance."""

    def __init__(self, message: str, scenarios: List[str], **kwargs):
        context = kwargs.pop('context', None) or {}
        context['scenarios'] = list(scenarios)
        self.scenarios = list(scenarios)

        recovery_suggestions = [
            "Increase the number of Monte Carlo samples",
            "Check that the scenario differs from the baseline (travel multiplier != 1)",
            "Verify that at least one parameter has a non-degenerate distribution",
        ]

        super().__init__(
            message,
            operation="evppi_variance",
            context=context,
            recovery_suggestions=recovery_suggestions,
            **kwargs
        )


class RegressionFailureError(ComputationError):
    """Raised when the smoother cannot be fitted for one cell."""

    def __init__(self, message: str, parameter: str, scenario: str, **kwargs):
        context = kwargs.pop('context', None) or {}
        context.update({'parameter': parameter, 'scenario': scenario})
        self.parameter = parameter
        self.scenario = scenario

        recovery_suggestions = [
            "Increase the number of Monte Carlo samples",
            "Try a different smoother (e.g. polynomial)",
            "Fix the smoothing penalty instead of selecting it by cross-validation",
        ]

        super().__init__(
            message,
            operation="evppi_regression",
            context=context,
            recovery_suggestions=recovery_suggestions,
            severity=ErrorSeverity.LOW,
            **kwargs
        )


# Configuration Errors
class ConfigurationError(EVPPIToolError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Any = None,
        **kwargs
    ):
        context = kwargs.pop('context', None) or {}
        context.update({
            'config_key': config_key,
            'config_value': config_value
        })

        recovery_suggestions = kwargs.pop('recovery_suggestions', None) or [
            "Check configuration syntax and format",
            "Verify all required configuration keys are present",
            "Generate a reference configuration with `evppi-tool template`",
        ]

        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            context=context,
            recovery_suggestions=recovery_suggestions,
            **kwargs
        )


class ConfigFileError(EVPPIToolError):
    """Raised when a configuration file cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        operation: str = "read",
        **kwargs
    ):
        context = kwargs.pop('context', None) or {}
        context.update({
            'file_path': file_path,
            'operation': operation
        })

        recovery_suggestions = [
            "Check file path exists and is accessible",
            "Use a .json, .yaml or .yml extension",
            "Validate the file syntax",
        ]

        super().__init__(
            message,
            category=ErrorCategory.IO,
            context=context,
            recovery_suggestions=recovery_suggestions,
            **kwargs
        )


# Utility functions
def handle_exception(
    exception: Exception,
    logger,
    context: Optional[Dict[str, Any]] = None,
    reraise: bool = True
) -> Optional[EVPPIToolError]:
    """Handle exception with proper logging and conversion.

    Args:
        exception: Original exception
        logger: Logger instance
        context: Additional context information
        reraise: Whether to reraise the exception

    Returns:
        Converted EVPPIToolError if not reraising

    Raises:
        EVPPIToolError: If reraise is True
    """
    if isinstance(exception, EVPPIToolError):
        tool_error = exception
    else:
        tool_error = EVPPIToolError(
            str(exception),
            context=context,
            cause=exception
        )

    logger.error(
        f"{tool_error.error_code}: {tool_error.message}",
        extra={'error_details': tool_error.to_dict()},
        exc_info=True
    )

    if reraise:
        if tool_error is exception:
            raise tool_error
        raise tool_error from exception
    return tool_error
