"""
Runtime configuration - environment driven, loaded once at import.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/icp.db")

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Embedding provider configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|ollama|sentence
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "nomic-embed-text")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))

# Ollama backs the remote embedding model and the chat model used for
# translation, query refinement and the catalog assistant
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1:8b")

# Translation configuration
TRANSLATION_ENABLED = os.getenv("TRANSLATION_ENABLED", "true").lower() == "true"
TRANSLATION_INVALIDATE_ON_EDIT = os.getenv("TRANSLATION_INVALIDATE_ON_EDIT", "true").lower() == "true"
DEFAULT_LANGUAGE = "en"

# Search configuration
VECTOR_MIN_SIMILARITY = float(os.getenv("VECTOR_MIN_SIMILARITY", "0.4"))
SEARCH_CANDIDATE_CAP = int(os.getenv("SEARCH_CANDIDATE_CAP", "200"))
SEARCH_DEFAULT_LIMIT = int(os.getenv("SEARCH_DEFAULT_LIMIT", "20"))
SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "100"))
INDEX_WARM_ON_STARTUP = os.getenv("INDEX_WARM_ON_STARTUP", "false").lower() == "true"

# Query refinement (soft dependency, bounded wait)
QUERY_REFINEMENT_ENABLED = os.getenv("QUERY_REFINEMENT_ENABLED", "false").lower() == "true"
QUERY_REFINEMENT_TIMEOUT_SEC = float(os.getenv("QUERY_REFINEMENT_TIMEOUT_SEC", "1.5"))

# Catalog assistant chat
CHAT_ENABLED = os.getenv("CHAT_ENABLED", "true").lower() == "true"
CHAT_CONTEXT_LIMIT = int(os.getenv("CHAT_CONTEXT_LIMIT", "5"))
CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", "10"))

# Optimistic concurrency retries for array mutations
STORE_MAX_RETRIES = int(os.getenv("STORE_MAX_RETRIES", "5"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# Version string
VERSION = "1.0.0"


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    if EMBED_PROVIDER == "ollama":
        from ..vector.embeddings import OllamaEmbedding
        return OllamaEmbedding(model_name=EMBED_MODEL_NAME, host=OLLAMA_HOST)
    elif EMBED_PROVIDER == "sentence":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)
    else:
        # Default to hash embeddings for unknown providers
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(EMBED_DIM)


def get_translation_provider():
    """Get configured translation provider. Returns None if translation disabled."""
    if not TRANSLATION_ENABLED:
        return None

    from .translation import OllamaTranslationProvider
    return OllamaTranslationProvider(model_name=OLLAMA_MODEL, host=OLLAMA_HOST)


def get_query_refiner():
    """Get configured query refiner. Returns None if refinement disabled."""
    if not QUERY_REFINEMENT_ENABLED:
        return None

    from .refinement import OllamaQueryRefiner
    return OllamaQueryRefiner(
        model_name=OLLAMA_MODEL,
        host=OLLAMA_HOST,
        timeout_sec=QUERY_REFINEMENT_TIMEOUT_SEC
    )


def get_chat_provider():
    """Get configured chat model for the catalog assistant. Returns None if chat disabled."""
    if not CHAT_ENABLED:
        return None

    from .assistant import OllamaChatProvider
    return OllamaChatProvider(model_name=OLLAMA_MODEL, host=OLLAMA_HOST)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def validate_config() -> List[str]:
    """Validate configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in ["hash", "ollama", "sentence"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if not 0.0 <= VECTOR_MIN_SIMILARITY <= 1.0:
        issues.append("VECTOR_MIN_SIMILARITY must be between 0 and 1")

    if SEARCH_CANDIDATE_CAP < 1:
        issues.append("SEARCH_CANDIDATE_CAP must be >= 1")

    if not 1 <= SEARCH_DEFAULT_LIMIT <= SEARCH_MAX_LIMIT:
        issues.append("SEARCH_DEFAULT_LIMIT must be between 1 and SEARCH_MAX_LIMIT")

    if QUERY_REFINEMENT_TIMEOUT_SEC <= 0:
        issues.append("QUERY_REFINEMENT_TIMEOUT_SEC must be > 0")

    if CHAT_CONTEXT_LIMIT < 1:
        issues.append("CHAT_CONTEXT_LIMIT must be >= 1")

    if STORE_MAX_RETRIES < 1:
        issues.append("STORE_MAX_RETRIES must be >= 1")

    return issues
