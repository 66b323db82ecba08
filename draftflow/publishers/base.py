"""Interface for destinations that receive approved sections."""

from abc import ABC, abstractmethod

from ..models.content import PublishResult
from ..models.draft import ApprovedSection


class Publisher(ABC):
    """A destination for approved content.

    Publishing is not deduplicated: every call creates a new object at the
    destination.
    """

    @property
    @abstractmethod
    def destination(self) -> str:
        """A unique name for this destination, e.g., 'canva'."""
        pass

    @abstractmethod
    async def publish(self, section: ApprovedSection, user_id: str) -> PublishResult:
        """
        Push one approved section to the destination.

        Args:
            section: The approved section to publish
            user_id: Identity whose credentials are used

        Returns:
            PublishResult referencing the created object

        Raises:
            NotConnected: Credentials are missing or expired
            PublishFailed: The destination rejected the request
        """
        pass
