# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_relay

import re
from urllib.parse import urlsplit

from coreason_relay.exceptions import MisconfiguredError

PATH_PLACEHOLDER = "{path}"

# e.g. ".../gateway.php", ".../index.html"
_FILE_SUFFIX = re.compile(r"\.[A-Za-z0-9]+$")


def is_concrete_endpoint(template: str) -> bool:
    """
    Heuristic: the template already names an exact endpoint when it carries a query
    string or its last path segment has a file-like suffix.
    """
    parts = urlsplit(template)
    if parts.query:
        return True
    last_segment = parts.path.rsplit("/", 1)[-1]
    return bool(_FILE_SUFFIX.search(last_segment))


def resolve_target(template: str, path: str) -> str:
    """
    Computes the upstream URL from the origin template and the inbound path+query.

    Args:
        template: The configured origin template.
        path: The inbound path and query string, e.g. "/foo?x=1".

    Returns:
        str: The absolute upstream URL.

    Raises:
        MisconfiguredError: If the template is empty.
    """
    if not template or not template.strip():
        raise MisconfiguredError("ORIGIN_URL not set")

    incoming = path or "/"
    if not incoming.startswith("/"):
        incoming = "/" + incoming

    if PATH_PLACEHOLDER in template:
        return template.replace(PATH_PLACEHOLDER, incoming, 1)

    if is_concrete_endpoint(template):
        return template

    base = template[:-1] if template.endswith("/") else template
    return base + incoming
