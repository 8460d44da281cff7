"""Background jobs for Shotkeeper."""

from shotkeeper.jobs.recognition import RecognitionJob, RecognitionStats

__all__ = ["RecognitionJob", "RecognitionStats"]
