import time

import requests
from flask import current_app

from study_assistant.errors import AppError, UpstreamServiceError
from study_assistant.services.chunking import chunk_text


class ElevenLabsService:
    """Wrapper around the ElevenLabs text-to-speech API."""

    SERVICE_NAME = "ElevenLabs"

    def __init__(self, voice_id=None):
        config = current_app.config
        self.api_key = config["ELEVENLABS_API_KEY"]
        if not self.api_key:
            raise AppError(
                "ElevenLabs API key not configured. Please add ELEVENLABS_API_KEY to your environment variables."
            )
        self.base_url = config["ELEVENLABS_API_URL"]
        self.voice_id = voice_id or config["ELEVENLABS_VOICE_ID"]
        self.model_id = config["ELEVENLABS_MODEL_ID"]
        self.chunk_size = config["TTS_CHUNK_SIZE"]
        self.overlap_words = config["TTS_OVERLAP_WORDS"]
        self.delay = config["TTS_REQUEST_DELAY"]

    def split_text(self, text):
        """Speech chunks with a word overlap; never empty for non-empty text."""
        chunks = chunk_text(text, max_chunk_size=self.chunk_size, overlap_words=self.overlap_words)
        return chunks or [text]

    def synthesize_chunk(self, text, chunk_number):
        try:
            resp = requests.post(
                f"{self.base_url}/text-to-speech/{self.voice_id}",
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": {
                        "stability": 0.5,
                        "similarity_boost": 0.5,
                        "style": 0.2,
                        "use_speaker_boost": True,
                    },
                },
                timeout=120,
            )
        except requests.RequestException as e:
            raise UpstreamServiceError(f"Speech generation failed: chunk {chunk_number}: {e}")
        if not resp.ok:
            raise UpstreamServiceError(
                f"Speech generation failed: {self.SERVICE_NAME} API error for chunk {chunk_number}: "
                f"{resp.status_code} {resp.text[:300]}",
                upstream_status=resp.status_code,
            )
        return resp.content

    def synthesize(self, text):
        """
        Narrate text as one MP3 byte string.

        Chunks are synthesized strictly in order with a pause between
        requests; the audio segments are concatenated in the same order.
        """
        chunks = self.split_text(text)
        current_app.logger.info(f"Split {len(text)} characters into {len(chunks)} speech chunks")

        segments = []
        for i, chunk in enumerate(chunks):
            current_app.logger.info(f"Processing chunk {i + 1}/{len(chunks)} ({len(chunk)} characters)")
            segments.append(self.synthesize_chunk(chunk, i + 1))
            if i < len(chunks) - 1:
                time.sleep(self.delay)

        audio = b"".join(segments)
        current_app.logger.info(f"Successfully generated {len(audio)} bytes of audio")
        return audio

    def list_voices(self):
        try:
            resp = requests.get(
                f"{self.base_url}/voices",
                headers={"xi-api-key": self.api_key},
                timeout=30,
            )
        except requests.RequestException as e:
            raise UpstreamServiceError(f"{self.SERVICE_NAME} request failed: {e}")
        if not resp.ok:
            raise UpstreamServiceError.from_response(self.SERVICE_NAME, resp)

        return [
            {
                "voice_id": v.get("voice_id"),
                "name": v.get("name"),
                "category": v.get("category"),
                "labels": v.get("labels"),
                "preview_url": v.get("preview_url"),
            }
            for v in resp.json().get("voices", [])
        ]
