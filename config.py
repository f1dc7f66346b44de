import os
import logging

import structlog

from exceptions import ConfigurationError

logger = logging.getLogger("deliberation")


def get_logger(name: str = "deliberation"):
    """Get a structured logger instance

    Usage:
        logger = get_logger(__name__)
        logger = logger.bind(component="pca")
        logger.info("extracted components", n_components=2, n_statements=12)

    Args:
        name: Logger name (typically __name__ or module path)

    Returns:
        Structured logger instance with context binding support
    """
    return structlog.get_logger(name)


class Config:
    """Configuration management for the deliberation engine

    Only ambient concerns live here (logging, mining defaults, cache TTL).
    Analysis tunables are passed explicitly per call, never read from env.
    """

    def __init__(self):
        # Logging
        self.LOG_LEVEL = os.getenv("DELIBERATION_LOG_LEVEL", "INFO").upper()
        self.DEBUG = os.getenv("DELIBERATION_DEBUG", "false").lower() == "true"

        # Proof-of-work mining
        self.MINING_MAX_ITERATIONS = int(
            os.getenv("DELIBERATION_MINING_MAX_ITERATIONS", "10000000")
        )
        self.MINING_PROGRESS_INTERVAL = int(
            os.getenv("DELIBERATION_MINING_PROGRESS_INTERVAL", "10000")
        )

        # Trust score caching (seconds)
        self.TRUST_CACHE_TTL = float(os.getenv("DELIBERATION_TRUST_CACHE_TTL", "300"))

        # Validate configuration
        self._validate()

    def _validate(self):
        """Validate configuration values"""
        if self.MINING_MAX_ITERATIONS <= 0:
            raise ConfigurationError(
                "DELIBERATION_MINING_MAX_ITERATIONS must be positive",
                config_key="DELIBERATION_MINING_MAX_ITERATIONS",
            )

        if self.MINING_PROGRESS_INTERVAL <= 0:
            raise ConfigurationError(
                "DELIBERATION_MINING_PROGRESS_INTERVAL must be positive",
                config_key="DELIBERATION_MINING_PROGRESS_INTERVAL",
            )

        if self.TRUST_CACHE_TTL <= 0:
            raise ConfigurationError(
                "DELIBERATION_TRUST_CACHE_TTL must be positive",
                config_key="DELIBERATION_TRUST_CACHE_TTL",
            )

        if self.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            logger.warning("unknown log level %s, falling back to INFO", self.LOG_LEVEL)
            self.LOG_LEVEL = "INFO"

    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.DEBUG

    def summary(self) -> dict:
        """Get a summary of current configuration"""
        return {
            "log_level": self.LOG_LEVEL,
            "debug": self.DEBUG,
            "mining_max_iterations": self.MINING_MAX_ITERATIONS,
            "mining_progress_interval": self.MINING_PROGRESS_INTERVAL,
            "trust_cache_ttl": self.TRUST_CACHE_TTL,
            "is_development": self.is_development(),
        }


def configure_structlog(is_development: bool = False, log_level: str = "INFO"):
    """Configure structlog rendering and the level of the deliberation logger

    Handlers are left to the host application; only the "deliberation"
    logger's level is set, the root logger is never touched.

    Args:
        is_development: If True, use key=value output. If False, use JSON.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    renderer = (
        structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True)
        if is_development
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


# Global configuration instance
config = Config()

configure_structlog(
    is_development=config.is_development(),
    log_level=config.LOG_LEVEL
)
