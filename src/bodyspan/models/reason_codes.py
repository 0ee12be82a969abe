"""
Reason Codes
============

Fixed set of machine-readable codes explaining why a frame produced no
measurement.

Each unavailable Measurement carries exactly ONE reason code. None of
these are faults: a missing or degenerate subject is an expected state
that clears on its own once the subject is measurable again.
"""

from enum import Enum


class UnavailableReason(str, Enum):
    """
    Machine-readable explanation for an unavailable measurement.

    Attributes:
        NO_SUBJECT: Detector found nothing in the frame
        WRONG_SUBJECT_COUNT: Subjects found, but not the count the mode needs
        SCHEMA_MISMATCH: Detector schema differs from the calibration points
        DEGENERATE_REFERENCE: Reference landmarks coincide (zero pixels)
        NON_FINITE_RESULT: Arithmetic produced NaN or infinity
        INVALID_FRAME_SIZE: Frame width or height is not positive
        NOT_MEASURED: No frame has been processed yet
    """

    NO_SUBJECT = "NO_SUBJECT"
    WRONG_SUBJECT_COUNT = "WRONG_SUBJECT_COUNT"
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"
    DEGENERATE_REFERENCE = "DEGENERATE_REFERENCE"
    NON_FINITE_RESULT = "NON_FINITE_RESULT"
    INVALID_FRAME_SIZE = "INVALID_FRAME_SIZE"
    NOT_MEASURED = "NOT_MEASURED"
