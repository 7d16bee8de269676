"""Pydantic schemas for request/response validation."""

from .afs import *  # noqa: F403
from .auth import *  # noqa: F403
from .booking import *  # noqa: F403
from .catalog import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .hotel import *  # noqa: F403
from .notification import *  # noqa: F403
