import logging
import sys
import os


# Formatter with ring ID
_FORMATTER = logging.Formatter(
    fmt="%(asctime)s.%(msecs)03d [%(ring_id)s] %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


class RingLogger:
    """Structured logger for a hash ring"""

    def __init__(
        self, ring_id: str, log_level: str = "INFO", log_dir: str | None = None
    ) -> None:
        self.ring_id: str = ring_id
        self.logger: logging.Logger = logging.getLogger(f"ring.{ring_id}")
        level = getattr(logging, log_level.upper(), logging.INFO)

        # Rings sharing an id share the logger: set it up once, then only
        # lower the level or add file handlers, never drop what others attached
        if not self.logger.handlers:
            self.logger.setLevel(level)
            self.logger.propagate = False

            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(_FORMATTER)
            self.logger.addHandler(console_handler)
        elif level < self.logger.level:
            self.logger.setLevel(level)

        if log_dir:
            self._add_file_handler(log_dir)

    def _add_file_handler(self, log_dir: str) -> None:
        """Attach a file handler for log_dir unless one is already attached"""
        path = os.path.abspath(os.path.join(log_dir, f"{self.ring_id}.log"))
        for handler in self.logger.handlers:
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
                return

        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_FORMATTER)
        self.logger.addHandler(file_handler)

    def _log(self, level: int, msg: str, **kwargs: object) -> None:
        """Internal log method that adds ring_id to extra"""
        extra: dict[str, object] = {"ring_id": self.ring_id}
        extra.update(kwargs)
        self.logger.log(level, msg, extra=extra)

    def debug(self, msg: str, **kwargs: object) -> None:
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: object) -> None:
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: object) -> None:
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs: object) -> None:
        self._log(logging.ERROR, msg, **kwargs)


def init_logger(
    ring_id: str, log_level: str = "INFO", log_dir: str | None = None
) -> RingLogger:
    """Initialize logger - always creates new instance"""
    return RingLogger(ring_id, log_level, log_dir)
