"""Re-executing the running program with its original arguments."""

import logging
import os
import sys
from typing import List, Optional

logger = logging.getLogger(__name__)


class RestartService:
    """Replaces the current process image. ``restart`` only returns if exec failed."""

    def __init__(self, argv: Optional[List[str]] = None, executable: Optional[str] = None):
        self.argv = list(argv if argv is not None else sys.argv)
        self.executable = executable or sys.executable

    def restart(self) -> bool:
        args = [self.executable, *self.argv]
        logger.warning(f"Restarting: {' '.join(args)}")
        logging.shutdown()
        try:
            sys.stdout.flush()
            sys.stderr.flush()
            os.execv(self.executable, args)
        except OSError as e:
            logger.critical(f"Restart failed: {e}")
        return False
