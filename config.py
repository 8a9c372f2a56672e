import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    MAX_CONTENT_LENGTH = 8 * 1024 * 1024  # 8 MB max request body

    # OpenRouter (chat + study material generation)
    OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
    OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")

    # Chat models
    CHAT_MODELS = [
        {"id": "openai/gpt-4o-mini", "name": "GPT-4o Mini (Default)"},
        {"id": "openai/gpt-4o", "name": "GPT-4o"},
        {"id": "google/gemini-2.5-flash", "name": "Gemini 2.5 Flash"},
    ]
    DEFAULT_CHAT_MODEL = "openai/gpt-4o-mini"
    CHAT_TEMPERATURE = 0.7
    CHAT_MAX_TOKENS = 4096

    # Embeddings (OpenAI-compatible endpoint)
    EMBEDDING_API_KEY = os.getenv("EMBEDDING_API_KEY", os.getenv("OPENAI_API_KEY", ""))
    EMBEDDING_BASE_URL = os.getenv("EMBEDDING_BASE_URL", "https://api.openai.com/v1")
    EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))
    EMBEDDING_WORKERS = 8

    # Retrieval
    CHUNK_SIZE = 500
    MATCH_THRESHOLD = 0.7
    MATCH_COUNT = 5
    RECENT_NOTES_FALLBACK = 3

    # Study materials
    STUDY_MATERIAL_MODEL = os.getenv("STUDY_MATERIAL_MODEL", "openai/gpt-4o-mini")
    STUDY_MATERIAL_MAX_INPUT_TOKENS = 8000  # ~4 characters per token
    STUDY_MATERIAL_TEMPERATURE = 0.7
    STUDY_MATERIAL_MAX_TOKENS = 2000

    # ElevenLabs text-to-speech
    ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY", "")
    ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
    ELEVENLABS_VOICE_ID = os.getenv("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM")
    ELEVENLABS_MODEL_ID = "eleven_monolingual_v1"
    TTS_CHUNK_SIZE = 2500  # provider limit is ~5000 characters per call
    TTS_OVERLAP_WORDS = 15
    TTS_REQUEST_DELAY = 0.5  # seconds between chunk requests
