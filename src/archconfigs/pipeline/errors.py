# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/pipeline/errors.py
from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RunReport


class ProvisionError(RuntimeError):
    """Base class for every error a provisioning run can raise."""


class FatalPrecondition(ProvisionError):
    """A hard requirement is unmet; nothing has been mutated."""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name
        self.message = message


class OperatorAbort(ProvisionError):
    """The operator chose not to continue. Exits cleanly (status 0)."""


class AdvisoryDeclined(OperatorAbort):
    """An advisory check failed and the operator declined to continue."""


class OperatorDeclined(OperatorAbort):
    """The operator declined a destructive step."""


class StepError(ProvisionError):
    """Raised by a step's apply (or probe) when the resource cannot be brought to state."""


class CollaboratorError(StepError):
    """An optional collaborator (key fetch, firmware query) failed. Non-fatal for optional steps."""


class CommandError(StepError):
    """An external tool returned a non-zero exit status."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "", stdout: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr.strip() or stdout.strip() or "no output"
        super().__init__(f"{' '.join(self.argv)} failed (rc={returncode}): {detail}")


class StepFailure(ProvisionError):
    """
    A step failed. Steps before it stay applied (no rollback); the partial
    report lists exactly the steps that completed.
    """

    def __init__(self, step_id: str, message: str, report: Optional["RunReport"] = None):
        super().__init__(f"step '{step_id}' failed: {message}")
        self.step_id = step_id
        self.message = message
        self.report = report
