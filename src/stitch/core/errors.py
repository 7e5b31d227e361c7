"""Error handling with friendly messages."""

from __future__ import annotations


class StitchError(Exception):
    """Base exception for all stitch errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(StitchError):
    """Configuration error (conflicting flags, bad config values)."""

    pass


class TypeDetectionError(StitchError):
    """Input type could not be determined."""

    def __init__(self) -> None:
        super().__init__(
            "could not detect the file type",
            "Pass the type explicitly with: --type <type>",
        )


class PluginError(StitchError):
    """Plugin-related error."""

    pass


class PluginNotFoundError(PluginError):
    """Plugin not found."""

    def __init__(self, plugin_name: str) -> None:
        super().__init__(
            f"Plugin '{plugin_name}' not found",
            "Use a plugin directory name or a 'module:attribute' reference",
        )


class PluginValidationError(PluginError):
    """Plugin failed validation."""

    pass


class BuildError(StitchError):
    """Engine run/write failure."""

    pass


class BuildSyntaxError(BuildError):
    """Syntax error with a source location."""

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.filename = filename
        self.line = line
        self.column = column
        super().__init__(message)
