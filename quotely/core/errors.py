from enum import Enum


class QuoteValidationError(ValueError):
    """Operationen avböjs innan något tillstånd ändrats (meddelandet visas för användaren)."""


class DeleteOutcome(str, Enum):
    """
    Resultat av en borttagning.

    Sanningsvärdet är själva lyckad/misslyckad-flaggan, så att
    `if store.delete_project(pid):` fungerar som förut. IN_USE och
    NOT_FOUND går ändå att skilja åt.
    """

    DELETED = "deleted"
    IN_USE = "in_use"
    NOT_FOUND = "not_found"

    def __bool__(self) -> bool:
        return self is DeleteOutcome.DELETED
