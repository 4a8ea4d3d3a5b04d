"""Configuration management for the Lexical RAG demo service."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # text | json

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Generation Configuration
GENERATION_MODEL = os.getenv("GENERATION_MODEL", "llama-3.1-8b-instant")
MAX_ANSWER_TOKENS = int(os.getenv("MAX_ANSWER_TOKENS", "800"))
ANSWER_TEMPERATURE = float(os.getenv("ANSWER_TEMPERATURE", "0.2"))

# Chunking Configuration
CHUNK_SIZE = 400  # characters
CHUNK_OVERLAP = 80  # characters, only used by the character-window fallback

# Retrieval Configuration
DEFAULT_TOP_K = 5
MAX_TOP_K = 50
BM25_K1 = 1.5  # term frequency saturation
BM25_B = 0.75  # length normalization
MIN_TOKEN_LENGTH = 3

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
