"""Placeholder substitution for message bodies."""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

from courier.utils.errors import TemplateNotFoundError
from courier.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PLACEHOLDER_FORMAT = "{{%s}}"


class TemplateProcessor:
    """Replace ``{{name}}`` placeholders with variable values."""

    def __init__(self, placeholder_format: str = DEFAULT_PLACEHOLDER_FORMAT):
        self.placeholder_format = placeholder_format

    def set_placeholder_format(self, placeholder_format: str) -> "TemplateProcessor":
        """Use a custom format; ``%s`` marks where the variable name goes."""
        if "%s" not in placeholder_format:
            raise ValueError("Placeholder format must contain '%s'")
        self.placeholder_format = placeholder_format
        return self

    def process_content(
        self, content: str, variables: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Substitute every variable into ``content``.

        Unknown placeholders are left untouched.
        """
        for key, value in (variables or {}).items():
            content = content.replace(self.placeholder_format % key, str(value))
        return content

    def process_file(
        self, template_path: str | Path, variables: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Read a template file and substitute variables.

        Raises:
            TemplateNotFoundError: If the file does not exist or is unreadable
        """
        path = Path(template_path)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise TemplateNotFoundError(
                f"Template file {path} does not exist", details={"path": str(path)}
            ) from e
        except OSError as e:
            raise TemplateNotFoundError(
                f"Failed to read template file {path}: {e.strerror or e}",
                details={"path": str(path)},
            ) from e

        logger.debug("Loaded template", extra={"path": str(path)})
        return self.process_content(content, variables)

    @staticmethod
    def template_exists(template_path: str | Path) -> bool:
        """Check the template exists and is readable."""
        path = Path(template_path)
        return path.is_file() and os.access(path, os.R_OK)
