"""ballspec public interface."""

from .core.grid import *
from .core.field import *
from .core.arithmetic import *
from .core.operators import *
from .core.problems import *
from .core.solvers import *
from .core.timesteppers import *
from .tools.post import *
from .tools.exceptions import *
from .tools.logging import add_file_handler
