"""Records shared by the catalog, dispatcher and reboot coordinator."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserChoice(str, Enum):
    PROCEED = "proceed"
    CANCEL = "cancel"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class MachineIdentity:
    model_id: str
    firmware_version: str


@dataclass(frozen=True)
class UpdateRule:
    model_id: str
    minimum_version: Optional[str]  # None = always apply for this model
    package_ref: str
    execution_args: str
    requires_encryption_suspend: bool
    prompt_message: str
    confirmation_timeout_seconds: int
    vendor: str = ""
    name: str = ""

    @property
    def label(self) -> str:
        return self.name or self.model_id


@dataclass(frozen=True)
class UpdateOutcome:
    ran_update: bool
    cancelled_by_user: bool
    process_exit_code: Optional[int] = None
    encryption_suspended: Optional[bool] = None  # None = rule needs no suspension


@dataclass
class DispatchState:
    update_executed: bool = False
    outcome: Optional[UpdateOutcome] = None
    rule: Optional[UpdateRule] = None
