# pyright: reportAny=false, reportExplicitAny=false
"""Typed validation of configuration data with per-field fallback.

Each section is validated against its frozen Pydantic model. A field that
fails validation is dropped and falls back to its default; every fallback is
reported as a ValidationIssue so the caller can log the reason.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from botmanager.config._models import (
    AdvancedConfig,
    Config,
    LoggingConfig,
    MonitoringConfig,
    RestartConfig,
)

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

ModelT = TypeVar("ModelT", bound=BaseModel)

SECTIONS: dict[str, type[BaseModel]] = {
    "restart": RestartConfig,
    "logging": LoggingConfig,
    "monitoring": MonitoringConfig,
    "advanced": AdvancedConfig,
}


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Represents a configuration validation issue.

    Attributes:
        key: Dotted path to the configuration key (e.g., "restart.max_attempts").
        message: Human-readable description of the issue.
        expected: Description of expected value or type, if available.
        actual: The actual value that caused the issue.
        severity: Errors fell back to a default; warnings were ignored.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    severity: Literal["error", "warning"]

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


def _pydantic_error_to_issue(
    section: str,
    model: type[BaseModel],
    error: "ErrorDetails",  # noqa: UP037
) -> ValidationIssue:
    """Convert a Pydantic error dict to a ValidationIssue.

    Args:
        section: Name of the section being validated.
        model: The section model, used to look up the field default.
        error: A single error dict from ValidationError.errors().

    Returns:
        A ValidationIssue describing the error and the default used instead.
    """
    loc = error.get("loc", ())
    field_name = str(loc[0]) if loc else ""
    key = ".".join([section, *(str(part) for part in loc)])

    ctx = error.get("ctx")
    expected: str | None = None
    if ctx is not None:
        if "expected" in ctx:
            expected = str(ctx["expected"])
        elif "ge" in ctx:
            expected = f">= {ctx['ge']}"

    field = model.model_fields.get(field_name)
    if expected is None and field is not None and field.annotation is not None:
        expected = getattr(field.annotation, "__name__", str(field.annotation))

    message = str(error.get("msg", "Validation error"))
    if field is not None:
        message = f"{message}; using default {field.default!r}"

    return ValidationIssue(
        key=key,
        message=message,
        expected=expected,
        actual=error.get("input"),
        severity="error",
    )


def validate_section(
    section: str,
    model: type[ModelT],
    data: object,
) -> tuple[ModelT, list[ValidationIssue]]:
    """Validate one configuration section, falling back per field.

    Args:
        section: Name of the section (used for issue keys).
        model: The Pydantic model for the section.
        data: Raw section data from the configuration file, or None if absent.

    Returns:
        Tuple of (validated section model, issues found).
    """
    if data is None:
        return model(), []

    if not isinstance(data, dict):
        issue = ValidationIssue(
            key=section,
            message="Section must be a table; using defaults",
            expected="table",
            actual=data,
            severity="error",
        )
        return model(), [issue]

    issues = [
        ValidationIssue(
            key=f"{section}.{name}",
            message="Unknown key ignored",
            expected=None,
            actual=value,
            severity="warning",
        )
        for name, value in data.items()
        if name not in model.model_fields
    ]
    values = {name: value for name, value in data.items() if name in model.model_fields}

    try:
        return model.model_validate(values), issues
    except ValidationError as e:
        for error in e.errors():
            issues.append(_pydantic_error_to_issue(section, model, error))
            loc = error.get("loc", ())
            if loc:
                _ = values.pop(str(loc[0]), None)

    return model.model_validate(values), issues


def build_config(
    data: dict[str, Any],
) -> tuple[Config, list[ValidationIssue]]:
    """Build a Config from raw configuration data.

    Missing sections use their defaults. Unknown top-level sections are
    reported as warnings.

    Args:
        data: Parsed configuration document.

    Returns:
        Tuple of (Config, issues found while validating).
    """
    issues: list[ValidationIssue] = [
        ValidationIssue(
            key=name,
            message="Unknown section ignored",
            expected=None,
            actual=value,
            severity="warning",
        )
        for name, value in data.items()
        if name not in SECTIONS
    ]

    sections: dict[str, BaseModel] = {}
    for name, model in SECTIONS.items():
        section, section_issues = validate_section(name, model, data.get(name))
        sections[name] = section
        issues.extend(section_issues)

    return Config.model_validate(sections), issues
