"""rage-retrieval: resilient client for a hosted vector retrieval pipeline.

Usage:
    from rage_retrieval import RetrievalClient, RetrievalQuery, RetrievalSettings

    client = RetrievalClient(RetrievalSettings.from_env())
    result = await client.retrieve(RetrievalQuery(question="What is the leave policy?"))
"""

import logging

from rage_retrieval.config import RetrievalSettings
from rage_retrieval.config.settings import _PACKAGE_VERSION as __version__
from rage_retrieval.core.errors import ClassifiedError, ErrorKind
from rage_retrieval.core.retrieval import (
    HealthStatus,
    RetrievalClient,
    RetrievalQuery,
    RetrievalResult,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ClassifiedError",
    "ErrorKind",
    "HealthStatus",
    "RetrievalClient",
    "RetrievalQuery",
    "RetrievalResult",
    "RetrievalSettings",
    "__version__",
]
