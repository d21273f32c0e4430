"""Resolve relationship endpoint references to person ids."""

from __future__ import annotations

import re
from typing import Any, Optional

_QUERY = re.compile(r"\?.*", re.DOTALL)
_PATH = re.compile(r".*/", re.DOTALL)
_SCHEME = re.compile(r".*:", re.DOTALL)


def person_id_from_reference(ref: Any) -> Optional[str]:
    """Return the person id named by a relationship endpoint.

    ``ref`` is a reference mapping like ``{"resource": "#p_1"}`` or the bare
    resource string. Local references (``"#p_1"``) yield ``"p_1"``. Absolute
    ones such as ``https://familysearch.org/ark:/61903/1:1:XXXX-YYY?x=1`` lose
    their query, path and scheme prefixes, yielding ``"XXXX-YYY"``.
    """

    resource = ref.get("resource") if isinstance(ref, dict) else ref
    if not isinstance(resource, str) or not resource:
        return None
    if resource.startswith("#"):
        return resource[1:] or None
    no_params = _QUERY.sub("", resource)
    return _SCHEME.sub("", _PATH.sub("", no_params)) or None


__all__ = ["person_id_from_reference"]
