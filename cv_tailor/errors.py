"""
Error taxonomy for the tailoring pipeline.

Only the extraction errors abort a generation. Job analysis, tailoring and
cover letter problems degrade to deterministic fallback content and are
recorded as fallbacks rather than raised.
"""


class TailorError(Exception):
    """Base exception for tailoring pipeline errors."""

    code = "tailor_error"
    user_message = "Something went wrong while generating your documents. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)


class InsufficientDataError(TailorError):
    """Combined profile and CV text is too short to extract facts from."""

    code = "insufficient_data"
    user_message = "Insufficient profile data. Please upload your CV or LinkedIn PDF."


class NameMissingError(TailorError):
    """Extraction found no usable candidate name."""

    code = "name_missing"
    user_message = (
        "Could not find your name in the uploaded documents. "
        "Please check your CV is readable."
    )


class ExtractionParseError(TailorError):
    """Model response did not contain a parsable JSON object."""

    code = "extraction_parse"
    user_message = "Could not extract profile data. Please ensure your CV is readable and try again."


class NonFatalPersistenceError(TailorError):
    """Saving to optional external storage failed. Never fails a generation."""

    code = "persistence"


class GenerationFailedError(TailorError):
    """Raised by the generation service when the pipeline aborted."""

    code = "generation_failed"

    def __init__(self, reason: str, user_message: str):
        super().__init__(user_message)
        self.reason = reason
        self.user_message = user_message


# Errors that move a generation request to the failed state
ABORTING_ERRORS = (InsufficientDataError, NameMissingError, ExtractionParseError)
