"""
Vision Client
Interprets a chart screenshot with Google Gemini

The model is asked for a strict JSON verdict (direction, probabilities,
confidence, summary, signals). Transient upstream failures are retried with
exponential backoff; anything else surfaces as VisionAnalysisError and is
never replaced by a fabricated result.
"""

import asyncio
import io
import json
import logging
import random
import re
from typing import Awaitable, Callable, List, Literal, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field, ValidationError

from chartsense.domain.models import AnalysisOutcome

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = ("image/png", "image/jpeg", "image/jpg")

VISION_PROMPT = """You are a technical analyst. Analyze only the chart image provided.

State the probable direction: up, down or sideways.

List the visual signals that support your conclusion (e.g. highs/lows, trend lines, support/resistance, candle patterns, breakouts, candle sequences, volatility).

Assign a Bullish Probability (%) and a Bearish Probability (%) that add up to 100.

Report the Model Confidence (%) based on image quality and pattern clarity.

Write a short summary (up to 4 sentences) and a notes field with limitations/remarks, if any.

Do not give financial advice.
Reply in strict JSON using the format:
{
"direction": "up|down|sideways",
"bullish_prob": <0-100>,
"bearish_prob": <0-100>,
"model_confidence": <0-100>,
"summary": "string",
"signals": ["string","string"],
"notes": "optional string",
"image_quality": "low|medium|high"
}"""

TRANSIENT_ERRORS = (
    asyncio.TimeoutError,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
)


class VisionAnalysisError(RuntimeError):
    """Vision model call failed or returned something unusable"""


class VisionTimeoutError(VisionAnalysisError):
    """Vision model did not answer in time"""


class VisionConfigurationError(VisionAnalysisError):
    """Vision model is not configured (missing API key)"""


class InvalidChartImageError(ValueError):
    """Upload is not a decodable PNG/JPEG image"""


class VisionResult(BaseModel):
    """Parsed model verdict"""
    direction: Literal["up", "down", "sideways"]
    bullish_prob: float = Field(ge=0)
    bearish_prob: float = Field(ge=0)
    model_confidence: float = Field(ge=0, le=100)
    summary: str
    signals: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    image_quality: Literal["low", "medium", "high"] = "medium"

    def to_outcome(self) -> AnalysisOutcome:
        return AnalysisOutcome(
            bullish_probability=self.bullish_prob,
            bearish_probability=self.bearish_prob,
            model_confidence=self.model_confidence,
        )


def decode_chart_image(data: bytes, mime_type: Optional[str] = None) -> Image.Image:
    """
    Decode an uploaded chart.

    Raises:
        InvalidChartImageError: not PNG/JPEG or not decodable
    """
    if mime_type and mime_type.lower() not in ALLOWED_MIME_TYPES:
        raise InvalidChartImageError("Only PNG and JPG images are accepted")
    if not data:
        raise InvalidChartImageError("Image is empty")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidChartImageError(f"Could not decode image: {exc}") from exc
    if image.format not in ("PNG", "JPEG"):
        raise InvalidChartImageError("Only PNG and JPG images are accepted")
    return image


def parse_vision_response(text: str) -> VisionResult:
    """
    Extract and validate the JSON verdict from a model reply.

    Code fences and surrounding prose are tolerated.
    """
    cleaned = re.sub(r'```json\s*', '', text or '')
    cleaned = re.sub(r'```\s*', '', cleaned).strip()

    json_match = re.search(r'\{.*\}', cleaned, re.DOTALL)
    if not json_match:
        raise VisionAnalysisError("Vision response did not contain JSON")

    try:
        payload = json.loads(json_match.group())
    except json.JSONDecodeError as exc:
        raise VisionAnalysisError(f"Vision response is not valid JSON: {exc}") from exc

    try:
        return VisionResult.model_validate(payload)
    except ValidationError as exc:
        raise VisionAnalysisError(f"Vision response has an invalid format: {exc}") from exc


def build_prompt(asset: str, timeframe: str, strategy: str) -> str:
    return f"{VISION_PROMPT}\n\nContext: {asset} | {timeframe} | strategy={strategy}."


class VisionClient:
    """
    Gemini-backed chart interpreter
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = "gemini-2.5-flash",
        temperature: float = 0.1,
        max_output_tokens: int = 1000,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        backoff_seconds: float = 0.4,
        model=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            api_key: Gemini API key; without it (and without `model`) every
                call raises VisionConfigurationError
            model: Pre-built model exposing `generate_content_async`
            sleep: Backoff sleep, replaceable in tests
        """
        self.model_name = model_name
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

        if model is None and api_key:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)
            logger.info(f"Using Gemini model: {model_name}")
        self._model = model

    @classmethod
    def from_settings(cls, settings) -> "VisionClient":
        if not settings.GEMINI_API_KEY:
            logger.warning("GEMINI_API_KEY not set. Chart analysis will fail.")
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model_name=settings.GEMINI_MODEL,
            temperature=settings.VISION_TEMPERATURE,
            max_output_tokens=settings.VISION_MAX_OUTPUT_TOKENS,
            timeout_seconds=settings.VISION_TIMEOUT_SECONDS,
            max_retries=settings.VISION_MAX_RETRIES,
            backoff_seconds=settings.VISION_BACKOFF_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return self._model is not None

    async def analyze_chart(
        self,
        image_bytes: bytes,
        mime_type: Optional[str],
        asset: str,
        timeframe: str,
        strategy: str,
    ) -> VisionResult:
        """
        Ask the model for a verdict on one chart.

        Raises:
            InvalidChartImageError: upload cannot be decoded
            VisionConfigurationError: no model configured
            VisionTimeoutError: every attempt timed out
            VisionAnalysisError: upstream failure or unusable reply
        """
        image = decode_chart_image(image_bytes, mime_type)

        if self._model is None:
            raise VisionConfigurationError("Vision model is not configured (GEMINI_API_KEY missing)")

        prompt = build_prompt(asset, timeframe, strategy)
        text = await self._generate_with_retry(prompt, image)
        result = parse_vision_response(text)

        logger.info(
            f"Vision verdict for {asset} {timeframe}: {result.direction} "
            f"bull={result.bullish_prob} bear={result.bearish_prob} conf={result.model_confidence}"
        )
        return result

    async def _generate(self, prompt: str, image: Image.Image) -> str:
        response = await asyncio.wait_for(
            self._model.generate_content_async(
                [prompt, image],
                generation_config=genai.types.GenerationConfig(
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            ),
            timeout=self.timeout_seconds,
        )
        try:
            text = response.text
        except ValueError as exc:
            # Raised by the SDK when the candidate was blocked or empty
            raise VisionAnalysisError(f"Empty response from vision model: {exc}") from exc
        if not text:
            raise VisionAnalysisError("Empty response from vision model")
        return text

    async def _generate_with_retry(self, prompt: str, image: Image.Image) -> str:
        """
        Retry wrapper around _generate() for transient failures.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                return await self._generate(prompt, image)
            except TRANSIENT_ERRORS as exc:
                last_exc = exc
                logger.warning(f"Vision attempt {attempt + 1} failed: {exc!r}")
                if attempt < self.max_retries:
                    await self._sleep(self.backoff_seconds * (2 ** attempt) + random.random() * 0.2)
            except google_exceptions.GoogleAPIError as exc:
                raise VisionAnalysisError(f"Vision request failed: {exc}") from exc

        if isinstance(last_exc, asyncio.TimeoutError):
            raise VisionTimeoutError(
                f"Vision model timed out after {self.max_retries + 1} attempts"
            ) from last_exc
        raise VisionAnalysisError(f"Vision request failed: {last_exc}") from last_exc
