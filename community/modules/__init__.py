"""
Modules package initialization.
Each feature of the board lives in its own module.
"""

from community.modules import auth
from community.modules import identity
from community.modules import roles
from community.modules import user_management
from community.modules import posts
from community.modules import support
from community.modules import media
