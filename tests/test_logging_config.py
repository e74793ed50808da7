from __future__ import annotations

import logging

from scraper_api.logging_config import HANDLER_NAME, configure_logging


def test_configure_logging_installs_one_named_handler():
    configure_logging("debug")
    configure_logging("INFO")

    logger = logging.getLogger("scraper_api")
    named = [h for h in logger.handlers if h.get_name() == HANDLER_NAME]

    assert len(named) == 1
    assert logger.level == logging.INFO
