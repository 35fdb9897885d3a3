from .logger import configure_logger
from .queueing import drain, put_latest

__all__ = [
    "configure_logger",
    "drain",
    "put_latest",
]
