"""Configuration for rage-retrieval.

Settings are layered: defaults, then a TOML file, then ``RAGE_*``
environment variables.

Example rage-retrieval.toml:

    [vectorize]
    uri = "https://api.vectorize.io/v1"
    organization_id = "550e8400-e29b-41d4-a716-446655440000"
    pipeline_id = "6ba7b810-9dad-11d1-80b4-00c04fd430c8"

    [retrieval]
    timeout_ms = 5000
    retry_attempts = 2
    num_results = 5

    [logging]
    level = "INFO"
"""

from rage_retrieval.config.settings import RetrievalSettings

__all__ = ["RetrievalSettings"]
