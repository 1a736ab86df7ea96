"""Gemini-backed subtitle alignment: video + transcript in, SRT text out."""

from __future__ import annotations

import base64
import logging
import os
import re

from google import genai
from google.genai import types

from services.errors import ConfigurationError, EmptyResponseError, ServiceError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
ALIGNMENT_TEMPERATURE = 0.2            # low temperature keeps timings deterministic
NO_SPEECH_SENTINEL = "ERROR: No speech detected"
GENERIC_SERVICE_ERROR = "Failed to generate subtitles."
_API_KEY_ENV_VARS = ("GOOGLE_API_KEY", "GEMINI_API_KEY", "API_KEY")

_LEADING_FENCE = re.compile(r"^\s*```[\w+-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?```\s*$")

ALIGNMENT_PROMPT = """
You are an expert video subtitle synchronizer.

TASK:
1. Listen to the audio track of the attached video.
2. Align the TRANSCRIPT below with the speech you hear.
3. Produce a standard SRT (SubRip) subtitle document.

RULES:
- Output ONLY the SRT content. No markdown code blocks (```), no explanations.
- Timestamps must follow the spoken words in the audio. Use the transcript as the text
  reference, not as the timing source.
- If the transcript language differs from the audio, map it as best you can, but take
  timing from the audio.
- Break lines naturally for readability.
- If the video is silent or no speech can be detected, return an empty SRT block or
  exactly "{sentinel}".

TRANSCRIPT:
{transcript}
""".strip()


def get_api_key() -> str | None:
    """First non-empty credential from GOOGLE_API_KEY, GEMINI_API_KEY or API_KEY."""
    for name in _API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def get_model_name() -> str:
    """Model name from env or default."""
    return os.environ.get("GEMINI_MODEL", "").strip() or DEFAULT_MODEL


def build_prompt(transcript: str) -> str:
    return ALIGNMENT_PROMPT.format(sentinel=NO_SPEECH_SENTINEL, transcript=transcript)


def strip_markdown_fences(text: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence, then trim."""
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


async def align(encoded_video: str, mime_type: str, transcript: str) -> str:
    """
    Ask Gemini to time the transcript against the video's audio.

    Exactly one request is issued; there are no retries. The no-speech sentinel
    comes back unchanged as a normal result.

    :param encoded_video: base64 video payload without a data-URI header
    :param mime_type: declared MIME type of the video, e.g. "video/mp4"
    :param transcript: reference text for the spoken content
    :return: SRT document with any markdown fencing stripped
    :raises ConfigurationError: no API key is configured (checked before any request)
    :raises EmptyResponseError: the model answered without text
    :raises ServiceError: transport or remote failure
    """
    api_key = get_api_key()
    if not api_key:
        raise ConfigurationError(
            "API key is missing. Set GOOGLE_API_KEY (or GEMINI_API_KEY) in the environment."
        )

    model = get_model_name()
    client = genai.Client(api_key=api_key)
    logger.info(
        "[alignment] Sending %s video (%d base64 chars) + transcript (%d chars) to %s",
        mime_type,
        len(encoded_video),
        len(transcript),
        model,
    )
    try:
        contents = types.Content(
            role="user",
            parts=[
                types.Part.from_bytes(data=base64.b64decode(encoded_video), mime_type=mime_type),
                types.Part(text=build_prompt(transcript)),
            ],
        )
        response = await client.aio.models.generate_content(
            model=model,
            contents=contents,
            config=types.GenerateContentConfig(temperature=ALIGNMENT_TEMPERATURE),
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("[alignment] Gemini request FAILED: %s", exc, exc_info=True)
        raise ServiceError(str(exc) or GENERIC_SERVICE_ERROR) from exc

    text = response.text
    if not text:
        logger.warning("[alignment] Gemini returned an empty response.")
        raise EmptyResponseError("Gemini returned an empty response.")

    cleaned = strip_markdown_fences(text)
    logger.info("[alignment] Received %d characters of subtitles.", len(cleaned))
    return cleaned
