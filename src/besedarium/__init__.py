"""
besedarium -- Static verification and projection of multiparty
session types.

Global protocols in, one local protocol per role out. Pure Python,
no runtime dependencies.
"""

from besedarium._version import __version__
from besedarium.mpst import (
    GlobalType,
    LocalType,
    Projector,
    Role,
    SessionTypeChecker,
    WellFormednessChecker,
    project,
    project_all,
)

# NOTE: The full API is accessible via direct imports:
#   from besedarium.mpst import interact, choice, parallel, compose, ...

__all__ = [
    "__version__",
    "Role",
    "GlobalType",
    "LocalType",
    "Projector",
    "project",
    "project_all",
    "WellFormednessChecker",
    "SessionTypeChecker",
]
