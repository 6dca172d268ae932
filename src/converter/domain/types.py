"""Domain types — NewType aliases and callback signatures."""

from collections.abc import Callable
from typing import TYPE_CHECKING, NewType

if TYPE_CHECKING:
    from converter.domain.models import ProgressSnapshot

ArgumentVector = list[str]
OutputId = NewType("OutputId", str)

ProgressCallback = Callable[["ProgressSnapshot"], None]
LogCallback = Callable[[str], None]
