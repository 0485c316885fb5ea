"""Error taxonomy for the report workflow."""


class HandyReportError(Exception):
    """Base class for every recoverable workflow error."""


class ValidationError(HandyReportError):
    """User input is missing or invalid; the current state is kept."""


class NoPhotosSelectedError(ValidationError):
    """Generation was requested without any selected photo."""


class EmptyInstructionError(ValidationError):
    """A refinement instruction was blank."""


class EmptyPromptError(ValidationError):
    """An annotation prompt was blank."""


class StageError(HandyReportError):
    """The requested action is not available in the current stage."""


class ConflictError(HandyReportError):
    """The action collides with work that is already in progress."""


class RefinementInProgressError(ConflictError):
    """Only one refinement may be in flight at a time."""


class AnnotationBusyError(ConflictError):
    """The annotation dialog is waiting on a collaborator call."""


class AnnotationNotReadyError(ConflictError):
    """There is no overlay to commit yet."""


class GalleryReadOnlyError(ConflictError):
    """Selection cannot be changed from a read-only gallery."""


class StaleResponseError(ConflictError):
    """A collaborator answered for state that no longer exists."""


class NotFoundError(HandyReportError):
    """A referenced record does not exist."""


class PhotoNotFoundError(NotFoundError):
    """No photo with the given id is in the evidence store."""


class NoActiveAnnotationError(NotFoundError):
    """No annotation dialog is open."""


class CollaboratorError(HandyReportError):
    """The generative AI service failed."""


class GenerationFailure(CollaboratorError):
    """The initial report could not be generated."""


class RefinementFailure(CollaboratorError):
    """The report could not be refined."""


class AnnotationAnalysisFailure(CollaboratorError):
    """No annotation prompt could be suggested for a photo."""


class AnnotationFailure(CollaboratorError):
    """The photo could not be annotated."""


class NoOverlayReturned(AnnotationFailure):
    """The model answered without an image.

    ``commentary`` holds the model's own explanation when it gave one.
    """

    def __init__(self, commentary: str | None = None) -> None:
        super().__init__(commentary or "The model did not return an annotated image")
        self.commentary = commentary


class SuggestionFailure(CollaboratorError):
    """A suggestion could not be produced."""
