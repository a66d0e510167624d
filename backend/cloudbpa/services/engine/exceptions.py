"""
Engine Module Exceptions

This module defines the exception hierarchy for the rule evaluation
engine. All engine-specific exceptions inherit from EngineError, enabling
consistent error handling across the registry, executor and orchestrator.

Exception Hierarchy:
    EngineError (base)
    ├── ConfigurationError (tenant/framework configuration problems)
    │   ├── FrameworkNotFoundError (unknown framework id or version)
    │   └── TenantConfigNotFoundError (no selection for the tenant)
    ├── RuleDefinitionError (invalid catalog content at load time)
    └── EvaluationError (unexpected failure evaluating a rule unit)

Error Propagation:
- Configuration errors are fatal to one framework only and are captured
  into FrameworkResult.error by the orchestrator
- Evaluation errors are absorbed by the executor as skipped units
- Only programmer errors propagate out of an analysis
"""

from typing import Any, Dict, Optional


class EngineError(Exception):
    """
    Base exception for all engine operations.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional context for debugging
        cause: Original exception if wrapping another error

    Usage:
        try:
            rule_set = await registry.resolve(tenant_id, framework_id)
        except EngineError as e:
            logger.error(f"Engine error {e.error_code}: {e.message}")
    """

    def __init__(
        self,
        message: str,
        error_code: str = "ENGINE_ERROR",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary representation safe for reports and events.
        """
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        """Format exception for logging."""
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f" (context: {self.context})")
        if self.cause:
            parts.append(f" (caused by: {self.cause})")
        return "".join(parts)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(EngineError):
    """
    Raised when a tenant's framework configuration cannot be resolved.

    Fatal to the affected framework only; other frameworks in the same
    analysis continue.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIGURATION_ERROR",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, error_code, context, cause)


class FrameworkNotFoundError(ConfigurationError):
    """
    Raised when a framework id or pinned version is unknown to the store.

    Attributes:
        framework_id: Requested framework
        version: Requested version, None when the latest was requested
    """

    def __init__(
        self,
        framework_id: str,
        version: Optional[str] = None,
        message: str = "",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        if not message:
            if version:
                message = f"Framework '{framework_id}' version '{version}' not found"
            else:
                message = f"Framework '{framework_id}' not found"

        framework_context = {"framework_id": framework_id, "version": version}
        if context:
            framework_context.update(context)

        super().__init__(message, "FRAMEWORK_NOT_FOUND", framework_context, cause)
        self.framework_id = framework_id
        self.version = version


class TenantConfigNotFoundError(ConfigurationError):
    """
    Raised when a tenant has no selection for a requested framework.

    Attributes:
        tenant_id: Tenant being analyzed
        framework_id: Requested framework
    """

    def __init__(
        self,
        tenant_id: str,
        framework_id: str,
        message: str = "",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        message = message or f"Tenant '{tenant_id}' has no configuration for framework '{framework_id}'"

        tenant_context = {"tenant_id": tenant_id, "framework_id": framework_id}
        if context:
            tenant_context.update(context)

        super().__init__(message, "TENANT_CONFIG_NOT_FOUND", tenant_context, cause)
        self.tenant_id = tenant_id
        self.framework_id = framework_id


# =============================================================================
# Definition and Evaluation Exceptions
# =============================================================================


class RuleDefinitionError(EngineError):
    """
    Raised when catalog content is invalid at load time.

    Covers unknown check conditions, missing check values, REGEX patterns
    that do not compile and duplicate rule ids.

    Attributes:
        source: Catalog file or store entry the content came from
    """

    def __init__(
        self,
        message: str,
        source: str = "",
        error_code: str = "RULE_DEFINITION_ERROR",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        definition_context = {"source": source}
        if context:
            definition_context.update(context)

        super().__init__(message, error_code, definition_context, cause)
        self.source = source


class EvaluationError(EngineError):
    """
    Raised when evaluating a (rule, resource) unit fails unexpectedly.

    Attributes:
        rule_id: Rule being evaluated
        resource_id: Resource being evaluated
    """

    def __init__(
        self,
        message: str,
        rule_id: str = "",
        resource_id: str = "",
        error_code: str = "EVALUATION_ERROR",
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        evaluation_context = {"rule_id": rule_id, "resource_id": resource_id}
        if context:
            evaluation_context.update(context)

        super().__init__(message, error_code, evaluation_context, cause)
        self.rule_id = rule_id
        self.resource_id = resource_id
