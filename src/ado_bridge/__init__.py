import logging

__version__ = "1.0.0"

logger = logging.getLogger("ado_bridge")
