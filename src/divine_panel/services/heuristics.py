"""Reclassification predicates for unverified clients.

The site is meant for phones and tablets. Desktop-class telemetry on an
unverified client is a weak signal that someone is browsing from a computer
pretending otherwise; it is not a security control. The matching rules are an
operational tuning knob, so the engine takes any predicate.
"""

from __future__ import annotations

import re
from typing import Final

from divine_panel.schemas.access import ClientRecord

_DESKTOP_PLATFORM: Final = re.compile(
    r"^(win(16|32|64)?|windows|macintel|macppc|mac68k|linux x86_64|linux i686|x11|cros)",
    re.IGNORECASE,
)
_DESKTOP_AGENT: Final = re.compile(r"windows nt|macintosh|x11|cros", re.IGNORECASE)
_MOBILE_MARKER: Final = re.compile(r"mobi|android|iphone|ipad|ipod", re.IGNORECASE)


def looks_like_desktop(record: ClientRecord) -> bool:
    """Return True when the record's telemetry reads as a desktop browser.

    Any mobile marker in the user agent wins over a desktop platform string.
    """
    agent = record.user_agent
    if agent and _MOBILE_MARKER.search(agent):
        return False
    if record.platform and _DESKTOP_PLATFORM.match(record.platform.strip()):
        return True
    return bool(agent and _DESKTOP_AGENT.search(agent))


def never(record: ClientRecord) -> bool:
    """Predicate used when reclassification is switched off."""
    return False
