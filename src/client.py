"""IRC transport factory for the bridge.

The transport's lifecycle is owned by ``ChannelConnection``; this module only
turns settings into a configured adapter.
"""

from __future__ import annotations

import logging

from adapters.irc_transport import IrcTransport
from settings import IrcSettings


def build_transport(irc: IrcSettings) -> IrcTransport:
    """Create an IRC transport from the IRC settings block."""

    logging.getLogger(__name__).info("Initializing IRC transport for %s:%s", irc.server, irc.port)

    return IrcTransport(
        irc.server,
        irc.port,
        irc.nickname,
        secure=irc.secure,
        username=irc.username,
        realname=irc.realname,
        password=irc.password,
        connect_timeout=irc.connect_timeout,
    )
