"""Text recognition for screenshots."""

from shotkeeper.ocr.recognizer import RecognitionResult, TextRecognizer

__all__ = ["RecognitionResult", "TextRecognizer"]
