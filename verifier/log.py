# verifier/log.py
import logging

FORMAT = "%(asctime)s %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Un solo StreamHandler sul root logger; chiamate ripetute cambiano solo il livello."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if getattr(root, "_verifier_configured", False):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    root.addHandler(handler)
    root._verifier_configured = True  # type: ignore[attr-defined]
