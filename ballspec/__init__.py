# Copyright (c) 2026, the ballspec developers.
#
# This file is part of ballspec, which is free software distributed
# under the terms of the GPLv3 license.  A copy of the license is
# available online at <http://www.gnu.org/licenses/gpl-3.0.html>.

__version__ = "0.1.0"

# Import custom logging to setup rootlogger
from .tools import logging as _logging_setup
import logging
logger = logging.getLogger(__name__.split('.')[-1])

# Warn if threading is not disabled
import os
if os.getenv("OMP_NUM_THREADS") != "1":
    logger.debug('Threading has not been disabled; BLAS threads may compete with the mode-parallel worker pool.')

# Set numexpr threading to match OMP_NUM_THREADS to supress warning
if os.getenv("NUMEXPR_MAX_THREADS") is None and os.getenv("OMP_NUM_THREADS") is not None:
    os.environ["NUMEXPR_MAX_THREADS"] = os.environ["OMP_NUM_THREADS"]
