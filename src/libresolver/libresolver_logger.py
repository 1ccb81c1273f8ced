"""
Logger for libresolver.

Every component receives a LibresolverLogger instance explicitly and reports
through it, so a caller can redirect or silence the whole resolver in one place.
"""

import inspect
import logging
import sys
from datetime import datetime

from pydantic import BaseModel


class LogLine(BaseModel):
    """
    Represents a line in the libresolver log
    """

    time: str
    level: str
    caller_file: str
    caller_name: str
    caller_line: int
    message: str


class LibresolverLogger:
    """
    Logger class
    """

    def __init__(self, name: str = "libresolver") -> None:
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

    def configure(self, level: int = logging.INFO) -> None:
        """
        Attach a handler writing to the current sys.stderr at the given level,
        replacing the one a previous call attached.
        """
        self.logger.setLevel(level)
        for handler in [h for h in self.logger.handlers if getattr(h, "_libresolver", False)]:
            self.logger.removeHandler(handler)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(level)
        handler._libresolver = True
        self.logger.addHandler(handler)

    def log(self, debug_message: str, level: int) -> None:
        """
        Log the message with the given level, tagged with the calling site
        """
        debug_message = debug_message.replace("\n", " ")

        frame = inspect.currentframe()
        outer = inspect.getouterframes(frame, 2)
        caller_file = outer[1][1].replace("\\", "/").split("/")[-1]
        caller_line = outer[1][2]
        caller_name = outer[1][3]

        line = LogLine(
            time=str(datetime.now()),
            level=logging.getLevelName(level),
            caller_file=caller_file,
            caller_name=caller_name,
            caller_line=caller_line,
            message=debug_message,
        )

        self.logger.log(level=level, msg=line.model_dump_json())
