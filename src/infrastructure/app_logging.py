from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

_HANDLER_NAME = "calcportal-json"


def setup_logger(level: str = "INFO") -> None:
    """Attach a JSON stream handler to the root logger once per process."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    )
    root.addHandler(handler)
