"""
Session configuration for Kaleido.

Author: xwest
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorPolicy(Enum):
    """What the session does after reporting an error"""
    RECOVER = "recover"  # Skip the offending statement and keep going
    ABORT = "abort"      # Re-raise the first error out of run()


DEFAULT_PROMPT = "kal> "


@dataclass
class SessionConfig:
    """
    Options for a compilation session.

    Attributes:
        error_policy: Whether errors end the run or are recovered from
        strict_numbers: Reject malformed numeric literals instead of truncating them
        dump_ir: Print the IR of every definition, extern and expression
        prompt: Printed before each statement; None disables it
        filename: Name used in source locations
    """
    error_policy: ErrorPolicy = ErrorPolicy.RECOVER
    strict_numbers: bool = False
    dump_ir: bool = False
    prompt: Optional[str] = None
    filename: str = "<stdin>"

    @property
    def aborts_on_error(self) -> bool:
        return self.error_policy is ErrorPolicy.ABORT
