# errors.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EstimateError(Exception):
    """
    Validation failure for an estimate request.

    `kind` is the stable error code surfaced verbatim to API callers;
    `message` is the human readable version for the CLI.
    """
    kind: str
    message: str = ""

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind}: {self.message}"
        return self.kind
