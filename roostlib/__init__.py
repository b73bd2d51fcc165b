"""
Roost Modules
"""

from .errors import *
from .config import *
from .crypto import *
from .model import *
from .locking import *
from .storage import *
from .password_generator import *
from .validation import *
from .clipboard import *
from .ui import *
