import logging

import pytest
from hashring.core.errors import PlacementExhaustedError
from hashring.core.ring import Ring
from hashring.utils.config import RingConfig
from hashring.utils.logger import init_logger


def test_logger_writes_to_log_dir(tmp_path):
    logger = init_logger("file_ring", "DEBUG", str(tmp_path / "logs"))
    logger.info("Added server A")

    for handler in logger.logger.handlers:
        handler.flush()

    content = (tmp_path / "logs" / "file_ring.log").read_text()
    assert "[file_ring] INFO - Added server A" in content


def test_logger_level_and_handlers():
    logger = init_logger("console_ring", "warning")

    assert logger.logger.level == logging.WARNING
    assert len(logger.logger.handlers) == 1
    assert not logger.logger.propagate

    # Re-initializing does not stack handlers
    logger = init_logger("console_ring", "warning")
    assert len(logger.logger.handlers) == 1


def test_ring_logs_placements(tmp_path):
    config = RingConfig(
        ring_id="logged_ring", log_level="DEBUG", log_dir=str(tmp_path)
    )
    ring = Ring(["Alice"], config)
    _ = ring.remove_server("Alice")

    for handler in ring.logger.logger.handlers:
        handler.flush()

    content = (tmp_path / "logged_ring.log").read_text()
    assert "Added server Alice at positions [25, 28, 90, 99, 191]" in content
    assert "Removed server Alice from positions [25, 28, 90, 99, 191]" in content


def test_rings_sharing_an_id_keep_each_others_handlers(tmp_path):
    first = Ring(
        [], RingConfig(ring_id="shared_ring", log_level="DEBUG", log_dir=str(tmp_path))
    )
    second = Ring([], RingConfig(ring_id="shared_ring", log_level="WARNING"))

    _ = first.add_server("Alice")
    _ = second.add_server("Bob")

    for handler in first.logger.logger.handlers:
        handler.flush()

    assert first.logger.logger.level == logging.DEBUG
    content = (tmp_path / "shared_ring.log").read_text()
    assert "Added server Alice" in content
    assert "Added server Bob" in content


def test_same_log_dir_is_attached_once(tmp_path):
    _ = init_logger("dir_ring", "INFO", str(tmp_path))
    logger = init_logger("dir_ring", "INFO", str(tmp_path))

    file_handlers = [
        h for h in logger.logger.handlers if isinstance(h, logging.FileHandler)
    ]
    assert len(file_handlers) == 1


def test_placement_exhaustion_logged_as_error(tmp_path):
    config = RingConfig(
        ring_id="exhausted_ring",
        positions_per_server=1,
        max_placement_attempts=1,
        log_dir=str(tmp_path),
    )
    ring = Ring(["Alice"], config)

    with pytest.raises(PlacementExhaustedError):
        _ = ring.add_server("Alice")

    for handler in ring.logger.logger.handlers:
        handler.flush()

    content = (tmp_path / "exhausted_ring.log").read_text()
    assert "ERROR - Could not find free positions for 'Alice'" in content
