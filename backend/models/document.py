"""Document data models."""
from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentInput:
    """A caller-supplied document: a display name and raw text."""
    name: str
    text: str
