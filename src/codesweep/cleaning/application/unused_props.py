"""
Unused React props removal (not implemented).

Finding unused destructured props needs a syntax-aware usage analysis of each
component, which the cleanup engine deliberately does not do. This capability
exists so the "removeUnusedProps" toggle has a real step to run; it never
modifies a file.
"""

import structlog

from codesweep.cleaning.domain.models import FileHandle
from codesweep.cleaning.domain.ports import DocumentStore

logger = structlog.get_logger(__name__)

# Any of these in the text marks a file as a possible React component
REACT_MARKERS = ("React", "jsx", "tsx")


class UnusedPropsRemover:
    """No-op placeholder for unused React prop removal."""

    implemented = False

    def __init__(self, documents: DocumentStore) -> None:
        self.documents = documents

    async def remove_unused_props_async(self, file: FileHandle) -> bool:
        """
        Remove unused React props from `file`.

        Returns:
            Always False; no prop analysis is performed
        """
        try:
            document = await self.documents.open_async(file)
            if not any(marker in document.text for marker in REACT_MARKERS):
                return False

            logger.debug("unused_props_removal_unimplemented", file=str(file))
            return False

        except Exception as e:
            logger.error("remove_unused_props_failed", file=str(file), error=str(e))
            return False
