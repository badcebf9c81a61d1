"""Exceptions for programmer errors. Expected "no result" cases return empty values instead."""


class PairfitError(Exception):
    """Base class for all pairfit errors."""


class CatalogError(PairfitError):
    """Raised when catalog records are malformed or reference each other inconsistently."""


class UnknownExerciseError(PairfitError, KeyError):
    """Raised by ExerciseCatalog.require for an id that is not in the catalog."""


class WorkoutMembershipError(PairfitError, ValueError):
    """Raised when a person id does not belong to the referenced workout or couple."""


class WorkoutAlreadyCompletedError(PairfitError):
    """Raised when a completed workout log is modified."""
