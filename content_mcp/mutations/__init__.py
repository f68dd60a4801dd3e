"""Patch building and atomic mutation transactions."""

from .models import MutationOptions
from .models import PatchOperation
from .models import PatchOperations
from .models import PatchTarget
from .models import PatchUnit
from .models import TransactionResult
from .patch import build_patch
from .transaction import MutationTransaction
from .transaction import submit

__all__ = [
    "MutationOptions",
    "MutationTransaction",
    "PatchOperation",
    "PatchOperations",
    "PatchTarget",
    "PatchUnit",
    "TransactionResult",
    "build_patch",
    "submit",
]
