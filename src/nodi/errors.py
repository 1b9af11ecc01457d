from __future__ import annotations

from pathlib import Path
from typing import Sequence


class NodiError(RuntimeError):
    pass


class ScanError(NodiError):
    """A single document could not be scanned."""

    def __init__(self, message: str, *, path: str | Path | None = None):
        self.path = str(path) if path is not None else None
        if self.path is not None:
            message = f"{self.path}: {message}"
        super().__init__(message)


class ReadFailure(ScanError):
    pass


class TokenDecodeFailure(ScanError):
    pass


class UnterminatedReference(ScanError):
    pass


class RegistrationFailure(NodiError):
    pass


class StorageFailure(NodiError):
    pass


class ResolutionError(NodiError):
    def __init__(self, message: str, *, name: str):
        self.name = name
        super().__init__(message)


class ResolutionNotFound(ResolutionError):
    def __init__(self, name: str, *, source: str | None = None):
        where = f" (referenced from {source})" if source else ""
        super().__init__(f"No document matches reference [[{name}]]{where}", name=name)
        self.source = source


class ResolutionAmbiguous(ResolutionError):
    def __init__(self, name: str, candidates: Sequence[str], *, source: str | None = None):
        self.candidates = list(candidates)
        self.source = source
        where = f" (referenced from {source})" if source else ""
        super().__init__(
            f"Reference [[{name}]] matches {len(self.candidates)} documents{where}: "
            + ", ".join(self.candidates),
            name=name,
        )
