from __future__ import annotations

from .grammar import *  # noqa: F401,F403
from .text_buffer import *  # noqa: F401,F403
from .matcher import *  # noqa: F401,F403
from .click_bridge import *  # noqa: F401,F403
from .overlay import *  # noqa: F401,F403
from .highlighter import *  # noqa: F401,F403
from .command_palette import *  # noqa: F401,F403
from .insertion import *  # noqa: F401,F403
from .picker_host import *  # noqa: F401,F403
from .editor import *  # noqa: F401,F403


__all__ = [name for name in globals() if not name.startswith("_")]
