"""Exceptions raised by the scoring engine."""


class ScoringEngineError(Exception):
    """Base exception for all scoring engine errors."""

    pass


class ValidationError(ScoringEngineError):
    """Raised when a raw value is rejected by the bound scoring method.

    Recoverable: the caller should re-prompt for a different value.
    """

    def __init__(self, message: str, value=None, scoring_method: str = None):
        super().__init__(message)
        self.value = value
        self.scoring_method = scoring_method


class NotFoundError(ScoringEngineError):
    """Raised when an event, stage, participant or score format is missing."""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ConfigurationError(ScoringEngineError):
    """Raised when a scoring method is referenced but not registered."""

    pass


class StructureError(ScoringEngineError):
    """Raised when structural setup would violate a stage tree invariant."""

    pass
