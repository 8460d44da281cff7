"""
Screenshot Text Recognition for Shotkeeper

Uses OpenAI's vision API to read the text in a screenshot. The result is
plain text with one recognized line per output line, which is what the
smart folder engine and snippet extraction work on.

Features:
- Recognition language hints (configurable)
- Token counting for budget management
- Disk cache keyed by image hash to avoid re-processing identical images
- Exponential backoff on transient API errors
"""

import base64
import hashlib
import json
import logging
import mimetypes
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import openai
import tiktoken
from openai import OpenAI

from shotkeeper.core.config import DEFAULT_RECOGNITION_LANGUAGES
from shotkeeper.core.paths import OCR_CACHE_DIR, get_ocr_cache_path
from shotkeeper.core.retry import RetryConfig, RetryError, retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_OCR_MODEL = "gpt-5-nano-2025-08-07"

# Default encoding for token estimation
DEFAULT_ENCODING = "cl100k_base"

# Maximum image size (bytes) accepted by the API
MAX_IMAGE_SIZE = 20 * 1024 * 1024

RECOGNITION_PROMPT_TEMPLATE = """You are a text recognition engine for screenshots.

Extract ALL visible text from the provided screenshot accurately.

Guidelines:
1. Output one recognized line of text per line, in reading order (top to bottom, left to right)
2. Keep numbers, prices, phone numbers, addresses and URLs exactly as shown
3. Apply light language correction for obvious recognition errors only
4. Expected languages, in priority order: {languages}
5. Skip icons and decorative elements without text
6. Do not add commentary, labels or markdown

Output ONLY the recognized text."""

OCR_RETRY_CONFIG = RetryConfig(
    max_retries=3,
    base_delay=1.0,
    max_delay=30.0,
    retryable_exceptions=(
        openai.APIConnectionError,
        openai.APITimeoutError,
        openai.RateLimitError,
        openai.InternalServerError,
    ),
)


@dataclass
class RecognitionResult:
    """Result of recognizing the text in one image."""

    image_path: Path
    text: str
    token_count: int
    model: str
    timestamp: datetime
    cached: bool
    image_hash: str


class TextRecognizer:
    """
    Recognizes text in screenshots using a vision model.

    Failures (missing file, oversized image, API errors after retries) are
    logged and reported as None rather than raised.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_OCR_MODEL,
        languages: list[str] | None = None,
        max_tokens: int = 4096,
        cache_results: bool = True,
        client: OpenAI | None = None,
        retry_config: RetryConfig = OCR_RETRY_CONFIG,
    ):
        """
        Initialize the recognizer.

        Args:
            api_key: OpenAI API key (uses OPENAI_API_KEY env var if not provided)
            model: Vision model to use
            languages: Recognition language hints
            max_tokens: Maximum completion tokens per image
            cache_results: Whether to cache results on disk
            client: Preconfigured OpenAI client (created lazily if None)
            retry_config: Backoff settings for transient API errors
        """
        self.model = model
        self.languages = list(languages) if languages else list(DEFAULT_RECOGNITION_LANGUAGES)
        self.max_tokens = max_tokens
        self.cache_results = cache_results
        self._api_key = api_key
        self._client = client
        self._retry_config = retry_config

        try:
            self._encoding = tiktoken.get_encoding(DEFAULT_ENCODING)
        except Exception:
            logger.warning("Failed to load tiktoken encoding, estimating token counts")
            self._encoding = None

    @classmethod
    def from_config(cls, config: dict, api_key: str | None = None) -> "TextRecognizer":
        ocr = config.get("ocr", {})
        return cls(
            api_key=api_key,
            model=ocr.get("model", DEFAULT_OCR_MODEL),
            languages=ocr.get("languages"),
            max_tokens=ocr.get("max_tokens", 4096),
            cache_results=ocr.get("cache_results", True),
        )

    def _get_client(self) -> OpenAI:
        """Get or create the OpenAI client (lazy so construction needs no key)."""
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key) if self._api_key else OpenAI()
        return self._client

    @property
    def system_prompt(self) -> str:
        return RECOGNITION_PROMPT_TEMPLATE.format(languages=", ".join(self.languages))

    def recognize(self, image_path: Path | str, use_cache: bool = True) -> RecognitionResult | None:
        """
        Recognize the text in an image.

        Args:
            image_path: Path to the screenshot image
            use_cache: Whether to check/use cached results

        Returns:
            RecognitionResult, or None if recognition fails
        """
        image_path = Path(image_path)

        if not image_path.exists():
            logger.error(f"Image not found: {image_path}")
            return None

        if image_path.stat().st_size > MAX_IMAGE_SIZE:
            logger.error(f"Image too large for recognition: {image_path}")
            return None

        image_hash = self._compute_hash(image_path)

        if use_cache and self.cache_results:
            cached = self._load_from_cache(image_hash)
            if cached:
                logger.debug(f"OCR cache hit for {image_path.name}")
                return RecognitionResult(
                    image_path=image_path,
                    text=cached["text"],
                    token_count=cached["token_count"],
                    model=cached["model"],
                    timestamp=datetime.fromisoformat(cached["timestamp"]),
                    cached=True,
                    image_hash=image_hash,
                )

        try:
            image_url = self._encode_image(image_path)
        except OSError as e:
            logger.error(f"Failed to encode image {image_path}: {e}")
            return None

        call = retry_with_backoff(config=self._retry_config)(self._request_text)
        try:
            text = call(image_url)
        except RetryError as e:
            logger.error(f"Recognition failed for {image_path} after {e.attempts} attempts: {e}")
            return None
        except openai.OpenAIError as e:
            logger.error(f"Recognition API call failed for {image_path}: {e}")
            return None

        result = RecognitionResult(
            image_path=image_path,
            text=text,
            token_count=self._count_tokens(text),
            model=self.model,
            timestamp=datetime.now(),
            cached=False,
            image_hash=image_hash,
        )

        if self.cache_results:
            self._save_to_cache(image_hash, result)

        return result

    def recognize_batch(self, image_paths: list[Path | str]) -> list[RecognitionResult]:
        """
        Recognize text in multiple images.

        Returns:
            Results for the images that succeeded (may be fewer than inputs)
        """
        results = []
        for path in image_paths:
            result = self.recognize(path)
            if result:
                results.append(result)
        return results

    def _request_text(self, image_url: str) -> str:
        response = self._get_client().chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": image_url, "detail": "high"},
                        },
                        {
                            "type": "text",
                            "text": "Recognize all text in this screenshot.",
                        },
                    ],
                },
            ],
            max_completion_tokens=self.max_tokens,
        )
        return _normalize_lines(response.choices[0].message.content or "")

    def _encode_image(self, image_path: Path) -> str:
        """Encode an image file as a base64 data URL."""
        mime_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
        with open(image_path, "rb") as f:
            data = base64.b64encode(f.read()).decode("utf-8")
        return f"data:{mime_type};base64,{data}"

    def _compute_hash(self, image_path: Path) -> str:
        """First 16 hex chars of the SHA-256 of the image file."""
        sha256 = hashlib.sha256()
        with open(image_path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                sha256.update(chunk)
        return sha256.hexdigest()[:16]

    def _count_tokens(self, text: str) -> int:
        if self._encoding:
            return len(self._encoding.encode(text))
        return len(text) // 4

    def _load_from_cache(self, image_hash: str) -> dict | None:
        cache_path = get_ocr_cache_path(image_hash)
        if not cache_path.exists():
            return None
        try:
            with open(cache_path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load OCR cache {cache_path.name}: {e}")
            return None

    def _save_to_cache(self, image_hash: str, result: RecognitionResult) -> None:
        cache_path = get_ocr_cache_path(image_hash)
        cache_data = {
            "text": result.text,
            "token_count": result.token_count,
            "model": result.model,
            "timestamp": result.timestamp.isoformat(),
        }
        try:
            with open(cache_path, "w", encoding="utf-8") as f:
                json.dump(cache_data, f)
        except OSError as e:
            logger.warning(f"Failed to save OCR cache {cache_path.name}: {e}")

    def clear_cache(self) -> int:
        """
        Delete all cached recognition results.

        Returns:
            Number of cache files deleted
        """
        if not OCR_CACHE_DIR.exists():
            return 0

        count = 0
        for cache_file in OCR_CACHE_DIR.glob("*.json"):
            try:
                cache_file.unlink()
                count += 1
            except OSError as e:
                logger.warning(f"Failed to delete cache file {cache_file}: {e}")
        return count


def _normalize_lines(text: str) -> str:
    """Strip trailing whitespace per line and drop leading/trailing blank lines."""
    lines = [line.rstrip() for line in text.strip().splitlines()]
    return "\n".join(lines)
