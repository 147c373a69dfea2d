"""Base service class with shared functionality.

No Rich imports, no console output. Returns structured data; raises typed
exceptions.
"""

import logging

from claude_client import ClaudeClient
from config_loader import get_limit, load_config
from skills import SkillContext, SkillResult

from .exceptions import GenerationFailedError

logger = logging.getLogger(__name__)


class BaseService:
    """Base class for all services.

    Owns the configuration and the generation client shared by the skills a
    service drives. Services log instead of printing.
    """

    def __init__(self, config: dict | None = None, client: ClaudeClient | None = None):
        """Initialize the service.

        Args:
            config: Configuration dictionary. If None, loads from config.json.
            client: ClaudeClient instance. If None, creates one from config.
        """
        self.config = config or load_config()
        self.client = client or ClaudeClient.from_config(self.config)

    def _context(self, **extra) -> SkillContext:
        return SkillContext(config=self.config, extra=extra)

    def _limit(self, name: str) -> int:
        return get_limit(self.config, name)

    @staticmethod
    def _raise_for(result: SkillResult, operation: str) -> None:
        """Turn a failed skill result into GenerationFailedError."""
        if result.success:
            return
        transient = bool(result.metadata.get("transient"))
        logger.error("%s failed (transient=%s): %s", operation, transient, result.error)
        raise GenerationFailedError(operation, result.error, transient=transient)
