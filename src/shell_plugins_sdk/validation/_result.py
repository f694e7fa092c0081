from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass
class ValidationIssue:
    """A single finding (error or warning) reported alongside a result.

    ``path`` is the dotted config key (``plugins.foo.protocol``) or the
    filesystem path the finding refers to.
    """

    level: Literal["error", "warning"]
    path: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationResult:
    """Issues found while normalizing a config.

    Attributes:
        issues: All errors and warnings. Use .errors and .warnings for filtered views.
        valid: True if there are no errors (warnings are allowed).
    """

    issues: list[ValidationIssue]

    @property
    def valid(self) -> bool:
        return not any(i.level == "error" for i in self.issues)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.level == "warning"]

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.level == "error"]
