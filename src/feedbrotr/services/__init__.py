"""Services: the top layer of the diamond DAG.

Services depend on [feedbrotr.core][feedbrotr.core],
[feedbrotr.stream][feedbrotr.stream], [feedbrotr.utils][feedbrotr.utils]
and [feedbrotr.models][feedbrotr.models]. Each service extends
[BaseService][feedbrotr.core.base_service.BaseService] and implements
``async def run()`` for one cycle of work.

Attributes:
    Ingestor: Continuous stream ingestion: visibility filtering,
        deduplicated post expansion and background media archival.
"""

from .ingestor import Ingestor, IngestorConfig


__all__ = [
    "Ingestor",
    "IngestorConfig",
]
