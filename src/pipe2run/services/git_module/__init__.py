from .core import GitWorkspace

from .exceptions import (
    GitExceptions,
    GitCloneError,
    GitLocalPathError,
    GitRefError,
)
from .models import LocalRepo

__all__ = [
    "GitWorkspace",
    "LocalRepo",
    "GitExceptions",
    "GitCloneError",
    "GitLocalPathError",
    "GitRefError",
]
