"""
Built-in directive registry

The host's own middleware, in the order it chains them. An extension
whose key appears here is placed right after its predecessor.
"""

from typing import Tuple

REGISTRY: Tuple[str, ...] = (
    "root",
    "bind",
    "tls",
    "startup",
    "shutdown",
    "log",
    "gzip",
    "errors",
    "header",
    "rewrite",
    "redir",
    "ext",
    "mime",
    "basicauth",
    "internal",
    "proxy",
    "fastcgi",
    "websocket",
    "markdown",
    "templates",
    "browse",
)
