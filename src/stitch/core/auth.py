"""Auth token lookup for engines that fetch remote dependencies."""

from __future__ import annotations

import netrc
import os
from collections.abc import Mapping
from pathlib import Path

from stitch.core.logging import get_logger

logger = get_logger(__name__)

TOKEN_ENV_VARS = ("STITCH_TOKEN", "GH_TOKEN", "GITHUB_TOKEN")
NETRC_HOST = "api.github.com"


def lookup_token(
    environ: Mapping[str, str] | None = None,
    netrc_path: Path | None = None,
) -> str | None:
    """Find a token: environment first, then ~/.netrc.

    A missing or unreadable netrc is not an error; builds that need no
    remote access work without a token.
    """
    env = os.environ if environ is None else environ
    for name in TOKEN_ENV_VARS:
        value = env.get(name)
        if value:
            logger.debug(f"Using token from ${name}")
            return value

    path = netrc_path or Path.home() / ".netrc"
    if not path.exists():
        return None

    try:
        entry = netrc.netrc(str(path)).authenticators(NETRC_HOST)
    except (netrc.NetrcParseError, OSError) as e:
        logger.warning(f"Ignoring unreadable netrc {path}: {e}")
        return None

    if entry is None:
        return None
    _login, _account, password = entry
    if password:
        logger.debug(f"Using token from {path}")
    return password or None
